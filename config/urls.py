from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static

urlpatterns = [
    path('admin/', admin.site.urls),

    # API endpoints
    path('api/accounts/', include('apps.accounts.urls')),
    path('api/audit/', include('apps.audit.urls')),

    path('api/patients/', include('apps.patients.urls')),
    path('api/catalog/', include('apps.catalog.urls')),
    path('api/insurance/', include('apps.insurance.urls')),

    path('api/billing/', include('apps.billing.urls')),
    path('api/payments/', include('apps.payments.urls')),
    path('api/reports/', include('apps.reports.urls')),
]

if settings.DEBUG:
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
