"""
Audit trail for state-changing actions (logins, bookings, stock moves,
promotion and staff changes).
"""
import logging
from typing import Any, Dict, Optional

from django.contrib.auth import get_user_model

from core.models import AuditEvent

logger = logging.getLogger(__name__)

User = get_user_model()


def log_action(*, user: Optional[User], action: str, object_type: Optional[str] = None,
               object_id: Optional[int] = None, detail: Optional[Dict[str, Any]] = None) -> AuditEvent:
    """Store one audit row; anonymous or unsaved users are recorded as empty."""
    actor = user if isinstance(user, User) and user.pk else None
    event = AuditEvent.objects.create(
        user=actor,
        action=action,
        object_type=object_type,
        object_id=object_id,
        detail=detail or {},
    )
    logger.debug('audit %s by %s on %s#%s', action, getattr(actor, 'pk', None), object_type, object_id)
    return event


def recent_actions(*, user: Optional[User] = None, limit: int = 5) -> list[dict]:
    """Latest audit events, used for the staff dashboards' activity feed."""
    qs = AuditEvent.objects.order_by('-created_at')
    if user is not None:
        qs = qs.filter(user=user)
    return [{
        'action': e.action,
        'objectType': e.object_type,
        'objectId': e.object_id,
        'detail': e.detail,
        'time': e.created_at.isoformat(),
    } for e in qs[:limit]]
