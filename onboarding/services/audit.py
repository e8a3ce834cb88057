import logging
from typing import Optional, Any, Dict

from django.contrib.auth import get_user_model
from django.db import transaction

from onboarding.models import AuditEvent

User = get_user_model()
logger = logging.getLogger(__name__)


def log_action(*, user, action: str, object_type: Optional[str] = None, object_id: Optional[int] = None,
               detail: Optional[Dict[str, Any]] = None) -> AuditEvent:
    logger.info('%s %s#%s by %s', action, object_type, object_id, getattr(user, 'pk', None))
    return AuditEvent.objects.create(
        user=user if isinstance(user, User) and user.pk else None,
        action=action,
        object_type=object_type, object_id=object_id,
        detail=detail or {},
    )


def safe_log_action(**kwargs) -> Optional[AuditEvent]:
    """``log_action`` that never breaks the calling operation."""
    try:
        with transaction.atomic():
            return log_action(**kwargs)
    except Exception:
        logger.exception('audit write failed for %s', kwargs.get('action'))
        return None
