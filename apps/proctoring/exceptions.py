"""
Exam-session error taxonomy.

Services raise these plain exceptions; they never build HTTP responses.
``exception_handler`` (wired through REST_FRAMEWORK['EXCEPTION_HANDLER'])
turns them into JSON payloads so the client can render countdowns, resume
links and so on from ``details``.

None of these are retried automatically. The caller has to change context
(wait for the window, re-enroll, close the other tab) before trying again.
"""
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler


class ProctoringError(Exception):
    """
    Base class for all exam-session failures.

    Attributes:
        message: Human-readable reason shown to the student
        details: Extra JSON-serializable context merged into the payload
    """
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = 'proctoring_error'
    default_message = 'The exam request could not be processed.'

    def __init__(self, message=None, details=None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self):
        payload = {'error': self.message, 'code': self.error_code}
        payload.update(self.details)
        return payload


class NotFoundError(ProctoringError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = 'not_found'
    default_message = 'Not found.'


class AuthorizationError(ProctoringError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = 'not_authorized'
    default_message = 'You are not allowed to perform this action.'


class NotPublishedError(AuthorizationError):
    error_code = 'not_published'
    default_message = 'Exam is not published yet.'


class NotEnrolledError(AuthorizationError):
    error_code = 'not_enrolled'
    default_message = 'You are not enrolled in this batch.'


class TimingError(ProctoringError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = 'timing'
    default_message = 'The exam is not available right now.'


class NotStartedError(TimingError):
    error_code = 'not_started'

    def __init__(self, minutes_until_start, details=None):
        self.minutes_until_start = minutes_until_start
        payload = {'minutes_until_start': minutes_until_start}
        payload.update(details or {})
        super().__init__(f'Exam will start in {minutes_until_start} minutes', payload)


class WindowClosedError(TimingError):
    error_code = 'window_closed'
    default_message = 'Exam has ended.'


class LateSubmissionError(TimingError):
    error_code = 'late_submission'
    default_message = 'Submission received after the allowed time.'


class ConcurrentSessionError(ProctoringError):
    status_code = status.HTTP_409_CONFLICT
    error_code = 'concurrent_session'
    default_message = 'Exam is already open in another window or device.'


class AttemptLimitError(ProctoringError):
    status_code = status.HTTP_409_CONFLICT
    error_code = 'attempt_limit'
    default_message = 'All attempts used.'


class AlreadySubmittedError(ProctoringError):
    status_code = status.HTTP_409_CONFLICT
    error_code = 'already_submitted'
    default_message = 'This attempt has already been submitted.'


class InvalidStateError(ProctoringError):
    status_code = status.HTTP_409_CONFLICT
    error_code = 'invalid_state'
    default_message = 'The attempt is not in a state that allows this action.'


class InvalidAnswerError(ProctoringError):
    error_code = 'invalid_answer'
    default_message = 'Answer does not belong to this exam.'


class GradingError(ProctoringError):
    """Grading could not finish; the attempt stays submitted and can be re-graded."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = 'grading_failed'
    default_message = 'Grading failed.'


def exception_handler(exc, context):
    if isinstance(exc, ProctoringError):
        return Response(exc.to_dict(), status=exc.status_code)
    return drf_exception_handler(exc, context)
