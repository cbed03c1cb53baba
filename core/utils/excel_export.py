# core/utils/excel_export.py
import pandas as pd
from django.http import HttpResponse
from datetime import datetime
from decimal import Decimal
from io import BytesIO

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def _filename(filename, extension):
    if filename is None:
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        filename = f'export_{timestamp}'
    if not filename.endswith(extension):
        filename = f'{filename}{extension}'
    return filename


def rows_to_dataframe(rows, columns=None):
    """
    Build a DataFrame from a list of dicts.

    Decimal money values become floats so Excel treats them as numbers;
    dates are written as ISO strings.
    """
    cleaned = []
    for row in rows:
        out = {}
        for key, value in row.items():
            if isinstance(value, Decimal):
                value = float(value)
            elif hasattr(value, 'strftime'):
                value = value.strftime('%Y-%m-%d %H:%M:%S') if hasattr(value, 'hour') else value.isoformat()
            out[key] = value
        cleaned.append(out)
    return pd.DataFrame(cleaned, columns=columns)


def export_multiple_sheets(data_dict, filename=None):
    """
    Export several datasets to different sheets of one workbook.

    Args:
        data_dict: {sheet_name: list of dicts or DataFrame}
    """
    filename = _filename(filename, '.xlsx')

    response = HttpResponse(content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'

    with BytesIO() as bio:
        with pd.ExcelWriter(bio, engine='openpyxl') as writer:
            for sheet_name, data in data_dict.items():
                df = data if isinstance(data, pd.DataFrame) else rows_to_dataframe(data)
                df.to_excel(writer, sheet_name=sheet_name, index=False)

        response.write(bio.getvalue())

    return response


def export_to_csv(data, filename=None):
    filename = _filename(filename, '.csv')
    df = data if isinstance(data, pd.DataFrame) else rows_to_dataframe(data)

    response = HttpResponse(content_type='text/csv')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    response.write(df.to_csv(index=False))

    return response
