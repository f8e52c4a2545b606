"""
Exam availability window and per-attempt lateness.

The window check blocks start(); the elapsed check at submit is advisory and
only becomes blocking when settings.LATE_SUBMISSION_POLICY is 'reject'.
"""
import math
from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from .exceptions import NotStartedError, WindowClosedError


@dataclass
class WindowStatus:
    ok: bool
    time_remaining: timedelta


@dataclass
class ElapsedCheck:
    exceeded: bool
    elapsed_minutes: int
    allowed_minutes: int


def grace_minutes():
    return getattr(settings, 'SUBMISSION_GRACE_MINUTES', 2)


def exam_window(exam):
    return exam.window_start, exam.window_end


def validate_window(exam, now=None):
    now = now or timezone.now()
    start, end = exam_window(exam)

    if now < start:
        minutes_until_start = math.ceil((start - now).total_seconds() / 60)
        raise NotStartedError(minutes_until_start)
    if now > end:
        raise WindowClosedError()

    return WindowStatus(ok=True, time_remaining=end - now)


def validate_elapsed(submission, exam, now=None):
    now = now or timezone.now()
    elapsed = (now - submission.started_at).total_seconds() / 60
    allowed = exam.duration_minutes + grace_minutes()

    return ElapsedCheck(
        exceeded=elapsed > allowed,
        elapsed_minutes=math.floor(elapsed),
        allowed_minutes=exam.duration_minutes,
    )
