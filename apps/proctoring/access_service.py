import logging
from dataclasses import dataclass

from django.core.exceptions import ValidationError as DjangoValidationError

from .exceptions import NotEnrolledError, NotFoundError, NotPublishedError
from .models import Enrollment, Exam

logger = logging.getLogger(__name__)


@dataclass
class AccessGrant:
    exam: Exam
    authorized: bool = True


def load_exam(exam_id):
    try:
        return Exam.objects.prefetch_related('questions', 'batches').get(pk=exam_id)
    except (Exam.DoesNotExist, DjangoValidationError):
        raise NotFoundError('Exam not found')


def validate_access(exam_id, student_id):
    """
    Confirm the exam exists, is published and the student holds an active
    enrollment in one of its batches. Pure read.
    """
    exam = load_exam(exam_id)

    if exam.status != Exam.Status.PUBLISHED:
        raise NotPublishedError()

    enrolled = Enrollment.objects.filter(
        batch__in=exam.batches.all(),
        student_id=student_id,
        status=Enrollment.Status.ACTIVE,
    ).exists()
    if not enrolled:
        logger.info("Student %s denied access to exam %s: not enrolled", student_id, exam.pk)
        raise NotEnrolledError()

    return AccessGrant(exam=exam)
