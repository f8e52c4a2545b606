"""
Attempt lifecycle: start/resume, draft autosave, event reporting, submit,
plus the staff-side transitions (remarks, absent).

    in_progress --submit--> submitted --grading--> evaluated
    in_progress --staff---> absent

flagged_for_review is an overlay on any state, owned by IntegrityMonitor.

Guards that log security events (SessionGuard) run outside any transaction
this module opens, so the event survives the rejection.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import Max
from django.utils import timezone

from . import timing
from .access_service import validate_access
from .audit import record_audit_event
from .exceptions import (
    AlreadySubmittedError,
    AttemptLimitError,
    InvalidAnswerError,
    LateSubmissionError,
    NotFoundError,
    ProctoringError,
)
from .grading_service import GradingService
from .integrity_service import IntegrityMonitor
from .models import ExamSubmission, SubmissionAnswer
from .session_guard import check_fingerprint, enforce_single_session

logger = logging.getLogger(__name__)

LATE_ACCEPT = 'accept'
LATE_FLAG = 'flag'
LATE_REJECT = 'reject'


@dataclass
class StartOutcome:
    submission: ExamSubmission
    exam: object
    is_resume: bool
    time_remaining: object = None


@dataclass
class SubmitOutcome:
    submission: ExamSubmission
    needs_manual_review: bool
    graded: bool
    late: bool = False
    can_retake: bool = False


@dataclass
class AttemptSummary:
    in_progress: Optional[ExamSubmission]
    consumed: int
    latest: Optional[ExamSubmission]
    attempts: list = field(default_factory=list)


def late_submission_policy():
    return getattr(settings, 'LATE_SUBMISSION_POLICY', LATE_ACCEPT)


def summarize_attempts(exam, student_id):
    attempts = list(
        ExamSubmission.objects.filter(exam=exam, student_id=student_id).order_by('-attempt_number')
    )
    in_progress = next((s for s in attempts if s.status == ExamSubmission.Status.IN_PROGRESS), None)
    consumed = sum(1 for s in attempts if s.status in ExamSubmission.CONSUMED_STATUSES)
    return AttemptSummary(
        in_progress=in_progress,
        consumed=consumed,
        latest=attempts[0] if attempts else None,
        attempts=attempts,
    )


def attempts_exhausted(exam, consumed):
    return exam.max_attempts > 0 and consumed >= exam.max_attempts


def get_student_submission(submission_id, student_id, queryset=None):
    qs = queryset if queryset is not None else ExamSubmission.objects.all()
    try:
        return qs.select_related('exam').get(pk=submission_id, student_id=student_id)
    except (ExamSubmission.DoesNotExist, DjangoValidationError, ValueError):
        raise NotFoundError('Submission not found')


class SubmissionService:

    def __init__(self, grading_service=None, integrity_monitor=None):
        self.grading = grading_service or GradingService()
        self.integrity = integrity_monitor or IntegrityMonitor()

    # ------------------------------------------------------------------
    # Start / resume
    # ------------------------------------------------------------------

    def start(self, exam_id, ctx, fingerprint, ip_address=None, user_agent=''):
        ctx.require_student()
        exam = validate_access(exam_id, ctx.student_id).exam
        window = timing.validate_window(exam)

        active = enforce_single_session(exam.pk, ctx.student_id, fingerprint, monitor=self.integrity)
        if active is not None:
            return self._resume(active, exam, window)

        consumed = ExamSubmission.objects.filter(
            exam=exam,
            student_id=ctx.student_id,
            status__in=ExamSubmission.CONSUMED_STATUSES,
        ).count()
        if attempts_exhausted(exam, consumed):
            raise AttemptLimitError(details={'max_attempts': exam.max_attempts})

        try:
            submission = self._create_attempt(exam, ctx.student_id, fingerprint, ip_address, user_agent)
        except IntegrityError:
            # Lost a race with a concurrent start(); the winner's attempt is live now
            active = enforce_single_session(exam.pk, ctx.student_id, fingerprint, monitor=self.integrity)
            if active is None:
                raise ProctoringError('Could not start the attempt, please retry.')
            return self._resume(active, exam, window)

        logger.info(
            "Student %s started attempt %s of exam %s",
            ctx.student_id, submission.attempt_number, exam.pk
        )
        record_audit_event(
            'exam.start',
            actor_id=ctx.student_id,
            resource_id=submission.pk,
            details={'exam': str(exam.pk), 'attempt_number': submission.attempt_number},
        )
        return StartOutcome(
            submission=submission, exam=exam, is_resume=False,
            time_remaining=window.time_remaining,
        )

    def _resume(self, submission, exam, window):
        logger.info("Resuming submission %s for student %s", submission.pk, submission.student_id)
        return StartOutcome(
            submission=submission, exam=exam, is_resume=True,
            time_remaining=window.time_remaining,
        )

    @transaction.atomic
    def _create_attempt(self, exam, student_id, fingerprint, ip_address, user_agent):
        last = ExamSubmission.objects.filter(
            exam=exam, student_id=student_id
        ).aggregate(last=Max('attempt_number'))['last']

        submission = ExamSubmission.objects.create(
            exam=exam,
            student_id=student_id,
            attempt_number=(last or 0) + 1,
            status=ExamSubmission.Status.IN_PROGRESS,
            started_at=timezone.now(),
            draft_answers=[],
            browser_fingerprint=fingerprint or '',
            ip_address=ip_address,
            user_agent=user_agent or '',
        )
        SubmissionAnswer.objects.bulk_create([
            SubmissionAnswer(submission=submission, question=question, answer='')
            for question in exam.questions.all()
        ])
        return submission

    # ------------------------------------------------------------------
    # Student writes while in progress
    # ------------------------------------------------------------------

    def _closed_or_missing(self, submission_id, student_id):
        # Distinguish "not yours / not there" from "already closed"
        get_student_submission(submission_id, student_id)
        return AlreadySubmittedError()

    def save_draft(self, submission_id, ctx, answers):
        now = timezone.now()
        updated = ExamSubmission.objects.filter(
            pk=submission_id,
            student_id=ctx.student_id,
            status=ExamSubmission.Status.IN_PROGRESS,
        ).update(draft_answers=answers, last_autosave_at=now, updated_at=now)
        if not updated:
            raise self._closed_or_missing(submission_id, ctx.student_id)
        return now

    def report_event(self, submission_id, ctx, event_type, metadata=None, fingerprint=None):
        submission = get_student_submission(submission_id, ctx.student_id)
        if not submission.is_open:
            raise AlreadySubmittedError()
        if fingerprint is not None:
            check_fingerprint(submission, fingerprint, monitor=self.integrity)

        self.integrity.record_event(submission, event_type, metadata)
        return submission, self.integrity.integrity_score(submission)

    # ------------------------------------------------------------------
    # Submit
    # ------------------------------------------------------------------

    def submit(self, submission_id, ctx, answers):
        """
        Freeze the attempt and grade it.

        The freeze commits before grading starts. If grading fails the attempt
        is left submitted and ungraded, which regrade picks up later.
        """
        submission = get_student_submission(submission_id, ctx.student_id)
        if not submission.is_open:
            raise AlreadySubmittedError()

        exam = submission.exam
        elapsed = timing.validate_elapsed(submission, exam)
        policy = late_submission_policy()
        if elapsed.exceeded and policy == LATE_REJECT:
            raise LateSubmissionError(details={
                'elapsed_minutes': elapsed.elapsed_minutes,
                'allowed_minutes': elapsed.allowed_minutes,
            })

        answer_map = self._validate_answers(submission, answers)
        self._freeze(submission, answer_map, elapsed.exceeded)

        if elapsed.exceeded:
            logger.warning(
                "Late submission %s: %s minutes elapsed, %s allowed (policy=%s)",
                submission.pk, elapsed.elapsed_minutes, elapsed.allowed_minutes, policy
            )
            if policy == LATE_FLAG:
                self.integrity.mark_for_review(submission, 'late submission')

        record_audit_event(
            'exam.submit',
            actor_id=ctx.student_id,
            resource_id=submission.pk,
            details={'late': elapsed.exceeded, 'elapsed_minutes': elapsed.elapsed_minutes},
        )

        graded = True
        try:
            result = self.grading.auto_grade(submission.pk)
            submission = result.submission
            needs_manual_review = result.needs_manual_review
        except Exception:
            logger.exception("Auto-grading failed for submission %s; left for regrade", submission.pk)
            submission.refresh_from_db()
            graded = False
            needs_manual_review = True

        consumed = ExamSubmission.objects.filter(
            exam=exam, student_id=ctx.student_id,
            status__in=ExamSubmission.CONSUMED_STATUSES,
        ).count()
        return SubmitOutcome(
            submission=submission,
            needs_manual_review=needs_manual_review,
            graded=graded,
            late=elapsed.exceeded,
            can_retake=not attempts_exhausted(exam, consumed),
        )

    def _validate_answers(self, submission, answers):
        question_ids = {str(qid) for qid in submission.answers.values_list('question_id', flat=True)}
        answer_map = {}
        for entry in answers:
            qid = str(entry['question_id'])
            if qid not in question_ids:
                raise InvalidAnswerError(f'Invalid question_id: {qid} for exam {submission.exam_id}')
            value = entry.get('answer')
            answer_map[qid] = '' if value is None else str(value)
        return answer_map

    @transaction.atomic
    def _freeze(self, submission, answer_map, late):
        now = timezone.now()
        # Compare-and-set on status: only one submit can win
        updated = ExamSubmission.objects.filter(
            pk=submission.pk, status=ExamSubmission.Status.IN_PROGRESS
        ).update(
            status=ExamSubmission.Status.SUBMITTED,
            submitted_at=now,
            time_spent_seconds=max(int((now - submission.started_at).total_seconds()), 0),
            draft_answers=[],
            late_submission=late,
            updated_at=now,
        )
        if not updated:
            raise AlreadySubmittedError()

        rows = list(submission.answers.all())
        for row in rows:
            row.answer = answer_map.get(str(row.question_id), '')
        SubmissionAnswer.objects.bulk_update(rows, ['answer'])
        submission.refresh_from_db()

    # ------------------------------------------------------------------
    # Staff transitions
    # ------------------------------------------------------------------

    def _get_for_staff(self, submission_id, ctx):
        ctx.require_staff()
        try:
            return ExamSubmission.objects.select_related('exam', 'student').get(pk=submission_id)
        except (ExamSubmission.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError('Submission not found')

    def set_remarks(self, submission_id, ctx, remarks):
        submission = self._get_for_staff(submission_id, ctx)
        submission.remarks = remarks
        submission.save(update_fields=['remarks', 'updated_at'])
        return submission

    def mark_absent(self, submission_id, ctx):
        """Close an abandoned attempt without consuming it."""
        submission = self._get_for_staff(submission_id, ctx)
        updated = ExamSubmission.objects.filter(
            pk=submission.pk, status=ExamSubmission.Status.IN_PROGRESS
        ).update(
            status=ExamSubmission.Status.ABSENT,
            draft_answers=[],
            updated_at=timezone.now(),
        )
        if not updated:
            raise AlreadySubmittedError('Only an in-progress attempt can be marked absent.')
        submission.refresh_from_db()
        logger.info("Submission %s marked absent by %s", submission.pk, ctx.student_id)
        return submission
