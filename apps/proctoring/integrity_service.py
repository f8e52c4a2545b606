"""
Anti-cheat event log and integrity scoring.

Events are child rows of the submission, so recording one is a single
INSERT; concurrent reports from the same tab can never overwrite each other.

The review flag is derived by ``compute_flag`` (a pure function over event
types) and only ever raised here. Lowering it is a staff action
(``IntegrityMonitor.clear_flag``); after a clearance only newer events count
towards re-flagging.
"""
import logging
from dataclasses import dataclass

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .audit import record_audit_event
from .exceptions import NotFoundError
from .models import ExamSubmission, SuspiciousEvent

logger = logging.getLogger(__name__)

EventType = SuspiciousEvent.Type

EVENT_WEIGHTS = {
    EventType.TAB_SWITCH: 1,
    EventType.FULLSCREEN_EXIT: 2,
    EventType.COPY_ATTEMPT: 3,
    EventType.PASTE_ATTEMPT: 3,
    EventType.RIGHT_CLICK: 1,
    EventType.DEV_TOOLS_OPEN: 5,
    EventType.MULTIPLE_SESSIONS: 10,
}
DEFAULT_EVENT_WEIGHT = 1

EVENT_SEVERITY = {
    EventType.MULTIPLE_SESSIONS: SuspiciousEvent.Severity.CRITICAL,
    EventType.DEV_TOOLS_OPEN: SuspiciousEvent.Severity.HIGH,
    EventType.COPY_ATTEMPT: SuspiciousEvent.Severity.MEDIUM,
    EventType.PASTE_ATTEMPT: SuspiciousEvent.Severity.MEDIUM,
}

AUTO_FLAG_EVENT_TYPES = frozenset({EventType.MULTIPLE_SESSIONS, EventType.DEV_TOOLS_OPEN})


@dataclass
class IntegrityScore:
    score: int
    rating: str

    def to_dict(self):
        return {'score': self.score, 'rating': self.rating}


def flag_event_threshold():
    return getattr(settings, 'INTEGRITY_FLAG_EVENT_THRESHOLD', 10)


def compute_integrity_score(event_types):
    """Weighted event count. Lower is better."""
    total = sum(EVENT_WEIGHTS.get(t, DEFAULT_EVENT_WEIGHT) for t in event_types)

    if total == 0:
        rating = 'excellent'
    elif total < 5:
        rating = 'good'
    elif total < 10:
        rating = 'suspicious'
    else:
        rating = 'highly_suspicious'
    return IntegrityScore(score=total, rating=rating)


def compute_flag(event_types):
    event_types = list(event_types)
    if any(t in AUTO_FLAG_EVENT_TYPES for t in event_types):
        return True
    return len(event_types) > flag_event_threshold()


class IntegrityMonitor:

    def record_event(self, submission, event_type, metadata=None, timestamp=None):
        """Append one event and re-derive the review flag."""
        event = SuspiciousEvent.objects.create(
            submission=submission,
            event_type=event_type,
            severity=EVENT_SEVERITY.get(event_type, SuspiciousEvent.Severity.LOW),
            metadata=metadata or {},
            timestamp=timestamp or timezone.now(),
        )
        logger.info(
            "Suspicious event %s (%s) on submission %s",
            event_type, event.severity, submission.pk
        )
        self.apply_auto_flag(submission)

        record_audit_event(
            'exam.security_event',
            actor_id=submission.student_id,
            resource_id=submission.pk,
            details={'event_type': event_type, 'severity': event.severity},
        )
        return event

    def event_types(self, submission, since=None):
        qs = SuspiciousEvent.objects.filter(submission_id=submission.pk)
        if since is not None:
            qs = qs.filter(timestamp__gt=since)
        return list(qs.values_list('event_type', flat=True))

    def integrity_score(self, submission):
        return compute_integrity_score(self.event_types(submission))

    def apply_auto_flag(self, submission):
        """
        Raise flagged_for_review if the rule holds. Never lowers it, so this is
        safe to call at any read or write boundary.
        """
        if submission.flagged_for_review:
            return True

        if not compute_flag(self.event_types(submission, since=submission.flag_cleared_at)):
            return False

        ExamSubmission.objects.filter(
            pk=submission.pk, flagged_for_review=False
        ).update(flagged_for_review=True, updated_at=timezone.now())
        submission.flagged_for_review = True
        logger.warning("Submission %s auto-flagged for review", submission.pk)
        return True

    def mark_for_review(self, submission, reason):
        ExamSubmission.objects.filter(pk=submission.pk).update(
            flagged_for_review=True, updated_at=timezone.now()
        )
        submission.flagged_for_review = True
        logger.warning("Submission %s flagged for review: %s", submission.pk, reason)

    @transaction.atomic
    def clear_flag(self, submission_id, ctx, review_notes=''):
        ctx.require_staff()
        try:
            submission = ExamSubmission.objects.select_for_update().get(pk=submission_id)
        except ExamSubmission.DoesNotExist:
            raise NotFoundError('Submission not found')

        submission.flagged_for_review = False
        submission.flag_cleared_at = timezone.now()
        if review_notes:
            submission.review_notes = review_notes
        submission.save(update_fields=[
            'flagged_for_review', 'flag_cleared_at', 'review_notes', 'updated_at'
        ])

        record_audit_event(
            'exam.flag_cleared',
            actor_id=ctx.student_id,
            resource_id=submission.pk,
            details={'review_notes': submission.review_notes},
        )
        return submission
