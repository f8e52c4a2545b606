"""
Grading service with Strategy Pattern implementation.

Architecture:
- McqQuestion / DescriptiveQuestion: tagged question variants the graders
  switch on, built from the stored Question row by ``as_variant``
- BaseGrader: interface for per-variant grading strategies
- McqGrader: exact option match with optional negative marking
- DescriptiveGrader: leaves the answer for a staff grading pass
- GradingService: orchestrator, safe to re-run from the submitted state

Answers a staff member has graded by hand (graded_by set) are never
overwritten by auto-grading.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

from django.db import transaction
from django.utils import timezone

from .audit import record_audit_event
from .exceptions import GradingError, InvalidAnswerError, InvalidStateError, NotFoundError
from .models import ExamSubmission, Question, SubmissionAnswer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class McqQuestion:
    question_id: str
    marks: float
    options: Tuple[str, ...]
    correct_option: int


@dataclass(frozen=True)
class DescriptiveQuestion:
    question_id: str
    marks: float


def as_variant(question):
    if question.question_type == Question.Type.MCQ:
        if question.correct_option is None:
            raise GradingError(f'MCQ question {question.pk} has no correct option')
        return McqQuestion(
            question_id=str(question.pk),
            marks=question.marks,
            options=tuple(question.options or ()),
            correct_option=question.correct_option,
        )
    if question.question_type == Question.Type.DESCRIPTIVE:
        return DescriptiveQuestion(question_id=str(question.pk), marks=question.marks)
    raise GradingError(f'Unsupported question type: {question.question_type}')


@dataclass
class GradingResult:
    submission: ExamSubmission
    needs_manual_review: bool

    @property
    def score(self):
        return self.submission.score


def is_blank(answer):
    return answer is None or not str(answer).strip()


class BaseGrader(ABC):
    """
    Strategy interface for grading implementations.
    Enables dependency injection and easy testing.
    """
    @abstractmethod
    def grade_answer(self, item, student_answer, exam):
        """
        Returns dict: {
            'is_correct': bool or None,
            'marks_awarded': float,
            'needs_manual_review': bool
        }
        """


class McqGrader(BaseGrader):
    """
    Compares the chosen option index with the correct one.

    A wrong, non-blank answer loses negative_marking_percentage of the
    question's marks when the exam has negative marking on. Blank answers are
    never penalised.
    """

    def grade_answer(self, item, student_answer, exam):
        if is_blank(student_answer):
            return {'is_correct': False, 'marks_awarded': 0, 'needs_manual_review': False}

        is_correct = str(student_answer).strip() == str(item.correct_option)
        if is_correct:
            marks = item.marks
        elif exam.negative_marking:
            marks = -(item.marks * exam.negative_marking_percentage / 100)
        else:
            marks = 0

        return {'is_correct': is_correct, 'marks_awarded': marks, 'needs_manual_review': False}


class DescriptiveGrader(BaseGrader):

    def grade_answer(self, item, student_answer, exam):
        return {'is_correct': None, 'marks_awarded': 0, 'needs_manual_review': True}


class GradingService:
    """
    Scores a submitted attempt against the question bank.
    Transitions submitted -> evaluated once nothing needs manual review.
    """

    def __init__(self, graders=None):
        self.graders = graders or {
            McqQuestion: McqGrader(),
            DescriptiveQuestion: DescriptiveGrader(),
        }

    def _grader_for(self, item):
        try:
            return self.graders[type(item)]
        except KeyError:
            raise GradingError(f'No grader registered for {type(item).__name__}')

    def auto_grade(self, submission_id, actor_id=None):
        with transaction.atomic():
            try:
                submission = (
                    ExamSubmission.objects.select_for_update()
                    .select_related('exam')
                    .get(pk=submission_id)
                )
            except ExamSubmission.DoesNotExist:
                raise NotFoundError('Submission not found')

            if submission.status not in ExamSubmission.CONSUMED_STATUSES:
                raise InvalidStateError(f'Cannot grade an attempt in status {submission.status}')

            exam = submission.exam
            answers = list(submission.answers.select_related('question'))
            now = timezone.now()
            needs_manual_review = False
            raw_score = 0

            for answer in answers:
                if answer.graded_by_id is not None:
                    # Staff-graded; keep as is
                    raw_score += answer.marks_awarded
                    continue

                item = as_variant(answer.question)
                result = self._grader_for(item).grade_answer(item, answer.answer, exam)

                answer.is_correct = result['is_correct']
                answer.marks_awarded = result['marks_awarded']
                if result['needs_manual_review']:
                    needs_manual_review = True
                    answer.graded_at = None
                else:
                    answer.graded_at = now
                raw_score += answer.marks_awarded

            SubmissionAnswer.objects.bulk_update(
                answers, ['is_correct', 'marks_awarded', 'graded_at']
            )

            total_marks = sum(q.marks for q in exam.questions.all())
            score = min(max(raw_score, 0), total_marks)
            submission.score = score
            submission.percentage = round(100 * score / total_marks, 2) if total_marks > 0 else 0

            if needs_manual_review:
                submission.status = ExamSubmission.Status.SUBMITTED
            else:
                submission.status = ExamSubmission.Status.EVALUATED
                submission.evaluated_at = now
                submission.evaluated_by_id = actor_id

            submission.save(update_fields=[
                'score', 'percentage', 'status', 'evaluated_at', 'evaluated_by', 'updated_at'
            ])

        logger.info(
            "Graded submission %s: score=%s percentage=%s manual_review=%s",
            submission.pk, submission.score, submission.percentage, needs_manual_review
        )
        record_audit_event(
            'exam.auto_grade',
            actor_id=actor_id,
            resource_id=submission.pk,
            details={
                'exam': str(exam.pk),
                'score': submission.score,
                'needs_manual_review': needs_manual_review,
            },
        )
        return GradingResult(submission=submission, needs_manual_review=needs_manual_review)

    def grade_answer(self, submission_id, question_id, marks, feedback, ctx):
        """Staff grading of a single answer, followed by a full re-score."""
        ctx.require_staff()

        with transaction.atomic():
            try:
                answer = (
                    SubmissionAnswer.objects.select_for_update()
                    .select_related('question', 'submission')
                    .get(submission_id=submission_id, question_id=question_id)
                )
            except (SubmissionAnswer.DoesNotExist, ValueError):
                raise NotFoundError('Answer not found')

            if answer.submission.status not in ExamSubmission.CONSUMED_STATUSES:
                raise InvalidAnswerError('Only submitted attempts can be graded')

            max_marks = answer.question.marks
            if marks < 0 or marks > max_marks:
                raise InvalidAnswerError(f'Marks must be between 0 and {max_marks}')

            answer.marks_awarded = marks
            answer.feedback = feedback or ''
            answer.graded_by_id = ctx.student_id
            answer.graded_at = timezone.now()
            answer.save(update_fields=['marks_awarded', 'feedback', 'graded_by', 'graded_at'])

        record_audit_event(
            'exam.manual_grade',
            actor_id=ctx.student_id,
            resource_id=submission_id,
            details={'question': str(question_id), 'marks_awarded': marks},
        )
        return self.auto_grade(submission_id, actor_id=ctx.student_id)

    def regrade_pending(self, exam_id: Optional[str] = None):
        """Re-run grading for attempts left submitted. Returns (graded, failed)."""
        qs = ExamSubmission.objects.filter(status=ExamSubmission.Status.SUBMITTED)
        if exam_id:
            qs = qs.filter(exam_id=exam_id)

        graded, failed = [], []
        for submission_id in qs.values_list('pk', flat=True):
            try:
                self.auto_grade(submission_id)
            except Exception:
                logger.exception("Regrade of submission %s failed", submission_id)
                failed.append(submission_id)
            else:
                graded.append(submission_id)
        return graded, failed
