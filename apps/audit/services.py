# apps/audit/services.py

import hashlib
import json
from typing import Optional, Dict, Any, List

from django.db import transaction
from django.forms.models import model_to_dict
from django.utils import timezone

from apps.audit.models import AuditLog
from core.constants import AuditActions

VALID_ACTIONS = {action for action, _ in AuditActions.CHOICES}


# ======================================================
# JSON / SERIALIZATION UTILITIES
# ======================================================

def json_dumps(value: Any) -> str:
    """
    Deterministic JSON serialization for hashing.
    """
    return json.dumps(
        value,
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
        default=str,
    )


def serialize_model(instance) -> Optional[Dict[str, Any]]:
    """
    Convert Django model instance to a JSON-safe dict.
    FK -> pk
    Date/Datetime -> ISO
    Decimal -> str (money keeps its exact cents)
    """
    if instance is None:
        return None

    raw = model_to_dict(instance)
    data: Dict[str, Any] = {}

    for field, value in raw.items():
        if hasattr(value, "pk"):
            data[field] = value.pk
        elif hasattr(value, "isoformat"):
            data[field] = value.isoformat()
        elif isinstance(value, (dict, list, str, int, float, bool)) or value is None:
            data[field] = value
        else:
            data[field] = str(value)

    return data


# ======================================================
# HASH CHAIN
# ======================================================

def _payload(*, timestamp, user_id, action, model_name, object_id, before, after, metadata):
    return {
        "timestamp": timestamp.isoformat(),
        "user_id": user_id,
        "action": action,
        "model": model_name,
        "object_id": object_id,
        "before": before,
        "after": after,
        "metadata": metadata or {},
    }


def compute_record_hash(previous_hash: str, payload: Dict[str, Any]) -> str:
    """
    Compute SHA-256 audit hash.
    """
    raw = f"{previous_hash}{json_dumps(payload)}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


# ======================================================
# CORE AUDIT LOGGER (IMMUTABLE)
# ======================================================

@transaction.atomic
def log_action(
    *,
    instance,
    action: str,
    user=None,
    before: Optional[Dict[str, Any]] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Create immutable audit log with hash chaining.
    """
    action = action.upper()
    if action not in VALID_ACTIONS:
        raise ValueError(f"Invalid audit action: {action}")

    # json round-trip so the hashed payload matches what the JSONField returns later
    after = None if action == AuditActions.DELETE else json.loads(json_dumps(serialize_model(instance)))
    before = json.loads(json_dumps(before)) if before is not None else None
    metadata = json.loads(json_dumps(metadata or {}))

    last = (
        AuditLog.objects
        .select_for_update()
        .order_by("-id")
        .only("record_hash")
        .first()
    )
    previous_hash = last.record_hash if last else ""

    timestamp = timezone.now()
    model_name = instance.__class__.__name__
    object_id = str(instance.pk) if instance.pk else "NEW"
    user = user if getattr(user, "is_authenticated", False) else None

    payload = _payload(
        timestamp=timestamp,
        user_id=user.pk if user else None,
        action=action,
        model_name=model_name,
        object_id=object_id,
        before=before,
        after=after,
        metadata=metadata,
    )

    return AuditLog.objects.create(
        user=user,
        action=action,
        model_name=model_name,
        object_id=object_id,
        object_repr=str(instance)[:255],
        before=before,
        after=after,
        metadata=metadata,
        previous_hash=previous_hash,
        record_hash=compute_record_hash(previous_hash, payload),
        timestamp=timestamp,
    )


# ======================================================
# CHAIN VERIFICATION
# ======================================================

def verify_chain() -> List[Dict[str, Any]]:
    """
    Verify audit hash chain by recomputing hashes.
    Returns the broken links; an empty list means the chain is intact.
    """
    broken = []
    previous_hash = ""

    for log in AuditLog.objects.order_by("id").iterator():
        payload = _payload(
            timestamp=log.timestamp,
            user_id=log.user_id,
            action=log.action,
            model_name=log.model_name,
            object_id=log.object_id,
            before=log.before,
            after=log.after,
            metadata=log.metadata,
        )
        expected_hash = compute_record_hash(previous_hash, payload)

        if log.previous_hash != previous_hash or log.record_hash != expected_hash:
            broken.append({
                "log_id": log.id,
                "expected_previous": previous_hash,
                "actual_previous": log.previous_hash,
                "expected_hash": expected_hash,
                "actual_hash": log.record_hash,
                "timestamp": log.timestamp,
            })

        previous_hash = log.record_hash

    return broken


# ======================================================
# QUERY HELPERS
# ======================================================

def get_audit_trail(*, model_name: str, object_id: Any, limit: int = 100):
    return (
        AuditLog.objects
        .filter(model_name=model_name, object_id=str(object_id))
        .select_related("user")
        .order_by("-id")[:limit]
    )
