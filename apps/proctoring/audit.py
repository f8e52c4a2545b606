"""
Best-effort audit trail for security-relevant exam actions.

Audit persistence belongs to another subsystem. The sink is a dotted path in
settings.AUDIT_LOG_SINK; whatever it does, a failure here must never break
the exam operation that triggered it.
"""
import logging

from django.conf import settings
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


def log_sink(entry):
    """Default sink: write the entry to the audit logger."""
    logger.info(
        "audit action=%s actor=%s resource=%s details=%s",
        entry['action'], entry['actor'], entry['resource_id'], entry['details']
    )


def record_audit_event(action, actor_id=None, resource_id=None, details=None):
    entry = {
        'action': action,
        'actor': actor_id,
        'resource': 'ExamSubmission',
        'resource_id': str(resource_id) if resource_id else None,
        'details': details or {},
    }
    try:
        sink = import_string(getattr(settings, 'AUDIT_LOG_SINK', 'apps.proctoring.audit.log_sink'))
        sink(entry)
    except Exception:
        logger.exception("Failed to write audit log entry for %s", action)
        return False
    return True
