"""
Decides what a student may see of their own attempt.

Priority:
1. exam.results_published -> shown (manual override)
2. 'immediate' -> shown once the student has used every attempt. With
   unlimited attempts (max_attempts == 0) this never reveals on its own.
3. 'after_exam_end' -> shown once the exam window has closed.

Withheld results carry status, submitted_at and a message only. The staff
result view does not go through here.
"""
from dataclasses import dataclass
from typing import Optional

from django.utils import timezone

from .models import Exam, ExamSubmission
from .timing import exam_window

IN_PROGRESS_MESSAGE = 'This attempt is still in progress.'
NOT_PUBLISHED_MESSAGE = 'Results have not been published yet.'
ATTEMPTS_REMAINING_MESSAGE = 'Results will be available after your final attempt.'
EXAM_NOT_ENDED_MESSAGE = 'Results will be available after the exam ends.'


@dataclass
class Visibility:
    shown: bool
    reason: Optional[str] = None


def resolve_visibility(exam, submission, all_attempts, now=None):
    now = now or timezone.now()

    if submission.status == ExamSubmission.Status.IN_PROGRESS:
        return Visibility(False, IN_PROGRESS_MESSAGE)

    if exam.results_published:
        return Visibility(True)

    if exam.result_publication == Exam.ResultPublication.IMMEDIATE:
        consumed = sum(1 for s in all_attempts if s.status in ExamSubmission.CONSUMED_STATUSES)
        if exam.max_attempts > 0 and consumed >= exam.max_attempts:
            return Visibility(True)
        return Visibility(False, ATTEMPTS_REMAINING_MESSAGE)

    if exam.result_publication == Exam.ResultPublication.AFTER_EXAM_END:
        _, end = exam_window(exam)
        if now > end:
            return Visibility(True)
        return Visibility(False, EXAM_NOT_ENDED_MESSAGE)

    return Visibility(False, NOT_PUBLISHED_MESSAGE)


def withheld_payload(submission, visibility):
    return {
        'status': submission.status,
        'submitted_at': submission.submitted_at,
        'message': visibility.reason,
    }
