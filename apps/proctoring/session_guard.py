import logging

from .exceptions import ConcurrentSessionError
from .integrity_service import IntegrityMonitor
from .models import ExamSubmission, SuspiciousEvent

logger = logging.getLogger(__name__)


def check_fingerprint(submission, fingerprint, monitor=None):
    """
    Reject a request coming from a different browser session than the one
    that opened the attempt. The security event is written before raising, so
    callers must not wrap this in a transaction they roll back.
    """
    if not submission.browser_fingerprint or submission.browser_fingerprint == fingerprint:
        return

    monitor = monitor or IntegrityMonitor()
    monitor.record_event(
        submission,
        SuspiciousEvent.Type.MULTIPLE_SESSIONS,
        metadata={
            'new_session_id': fingerprint,
            'existing_session_id': submission.browser_fingerprint,
        },
    )
    logger.warning(
        "Concurrent session rejected for submission %s (student %s)",
        submission.pk, submission.student_id
    )
    raise ConcurrentSessionError()


def enforce_single_session(exam_id, student_id, fingerprint, monitor=None):
    """Return the live attempt (if any) once the caller is known to own it."""
    active = ExamSubmission.objects.filter(
        exam_id=exam_id,
        student_id=student_id,
        status=ExamSubmission.Status.IN_PROGRESS,
    ).first()

    if active is not None:
        check_fingerprint(active, fingerprint, monitor=monitor)
    return active
