import logging

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_ipv46_address
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from . import timing
from .access_service import validate_access
from .context import AuthContext
from .exceptions import AttemptLimitError, NotFoundError, TimingError
from .grading_service import GradingService
from .integrity_service import IntegrityMonitor, compute_integrity_score
from .models import Enrollment, Exam, ExamSubmission
from .permissions import IsStaffMember, IsStudent
from .result_gate import resolve_visibility, withheld_payload
from .serializers import (
    AdminSubmissionDetailSerializer,
    AdminSubmissionListSerializer,
    AutosaveSerializer,
    EventReportSerializer,
    ExamListSerializer,
    ExamSummarySerializer,
    GradeAnswerSerializer,
    ReviewSerializer,
    SanitizedExamSerializer,
    StartExamSerializer,
    StudentResultSerializer,
    SubmissionListSerializer,
    SubmissionStateSerializer,
    SubmitExamSerializer,
)
from .submission_service import (
    SubmissionService,
    attempts_exhausted,
    get_student_submission,
    summarize_attempts,
)

logger = logging.getLogger(__name__)


def client_ip(request):
    """Proxy headers are only honoured when TRUST_X_FORWARDED_FOR is on."""
    ip = None
    if settings.TRUST_X_FORWARDED_FOR:
        forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if forwarded_for:
            ip = forwarded_for.split(',')[0].strip()
        else:
            ip = request.META.get('HTTP_X_REAL_IP')
    ip = ip or request.META.get('REMOTE_ADDR')
    if not ip:
        return None
    try:
        validate_ipv46_address(ip)
    except DjangoValidationError:
        return None
    return ip


def integrity_from_prefetch(submission):
    return compute_integrity_score(e.event_type for e in submission.suspicious_events.all())


def student_exam_status(exam, summary, now):
    start, end = timing.exam_window(exam)
    if now < start:
        return 'upcoming'
    if summary.in_progress is not None:
        return 'in_progress'
    if now > end:
        return 'submitted' if summary.consumed else 'missed'
    if attempts_exhausted(exam, summary.consumed):
        return 'submitted'
    return 'available'


def best_result(exam, summary, now):
    consumed = [s for s in summary.attempts if s.status in ExamSubmission.CONSUMED_STATUSES]
    if not consumed:
        return None
    best = max(consumed, key=lambda s: s.score)
    result = {'id': str(best.pk), 'status': best.status, 'attempt_number': best.attempt_number}
    if resolve_visibility(exam, best, summary.attempts, now=now).shown:
        result['score'] = best.score
        result['percentage'] = best.percentage
    return result


class StudentExamListView(APIView):
    """Published exams in the student's active batches, with attempt status."""
    permission_classes = [IsAuthenticated, IsStudent]

    def get(self, request):
        ctx = AuthContext.from_request(request)
        batch_ids = Enrollment.objects.filter(
            student_id=ctx.student_id, status=Enrollment.Status.ACTIVE
        ).values_list('batch_id', flat=True)

        exams = Exam.objects.filter(
            batches__in=batch_ids, status=Exam.Status.PUBLISHED
        ).distinct().order_by('-scheduled_at')

        now = timezone.now()
        for exam in exams:
            summary = summarize_attempts(exam, ctx.student_id)
            exam.submission_status = student_exam_status(exam, summary, now)
            exam.attempts_used = summary.consumed
            exam.best_result = best_result(exam, summary, now)

        return Response({'exams': ExamListSerializer(exams, many=True).data})


class ExamInstructionsView(APIView):
    """
    Instructions stay viewable outside the window; the timing failure is
    returned with enough exam info for the client to show a countdown.
    """
    permission_classes = [IsAuthenticated, IsStudent]

    def get(self, request, pk):
        ctx = AuthContext.from_request(request)
        exam = validate_access(pk, ctx.student_id).exam

        try:
            timing.validate_window(exam)
        except TimingError as e:
            payload = e.to_dict()
            payload['exam'] = {
                'title': exam.title,
                'scheduled_at': exam.scheduled_at,
                'duration_minutes': exam.duration_minutes,
            }
            return Response(payload, status=e.status_code)

        summary = summarize_attempts(exam, ctx.student_id)
        in_progress = summary.in_progress
        if in_progress is None and attempts_exhausted(exam, summary.consumed):
            raise AttemptLimitError(details={
                'submission_id': str(summary.latest.pk) if summary.latest else None,
            })

        if in_progress is not None:
            attempt_number = in_progress.attempt_number
        else:
            attempt_number = (summary.latest.attempt_number if summary.latest else 0) + 1

        return Response({
            'exam': ExamSummarySerializer(exam).data,
            'can_resume': in_progress is not None,
            'submission_id': in_progress.pk if in_progress else None,
            'started_at': in_progress.started_at if in_progress else None,
            'attempt_number': attempt_number,
        })


class ExamStartView(APIView):
    """
    Start or resume an attempt.

    Safe to re-issue: while an attempt is open the same submission and drafts
    come back with is_resume=True.
    """
    permission_classes = [IsAuthenticated, IsStudent]

    def post(self, request, pk):
        serializer = StartExamSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        outcome = SubmissionService().start(
            pk,
            AuthContext.from_request(request),
            serializer.validated_data['session_fingerprint'],
            ip_address=client_ip(request),
            user_agent=request.META.get('HTTP_USER_AGENT', ''),
        )

        return Response({
            'submission': SubmissionStateSerializer(outcome.submission).data,
            'exam': SanitizedExamSerializer(outcome.exam).data,
            'is_resume': outcome.is_resume,
            'time_remaining_seconds': int(outcome.time_remaining.total_seconds()),
        }, status=status.HTTP_200_OK if outcome.is_resume else status.HTTP_201_CREATED)


class SubmissionAutosaveView(APIView):
    permission_classes = [IsAuthenticated, IsStudent]

    def patch(self, request, pk):
        serializer = AutosaveSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        saved_at = SubmissionService().save_draft(
            pk, AuthContext.from_request(request), serializer.validated_data['answers']
        )
        return Response({'success': True, 'saved_at': saved_at})


class SubmissionEventView(APIView):
    permission_classes = [IsAuthenticated, IsStudent]

    def post(self, request, pk):
        serializer = EventReportSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        submission, integrity = SubmissionService().report_event(
            pk,
            AuthContext.from_request(request),
            data['event_type'],
            metadata=data.get('metadata'),
            fingerprint=data.get('session_fingerprint'),
        )
        return Response({
            'recorded': True,
            'integrity': integrity.to_dict(),
            'flagged_for_review': submission.flagged_for_review,
        }, status=status.HTTP_201_CREATED)


class SubmissionSubmitView(APIView):
    """
    Freeze the attempt and grade it synchronously. The score is included only
    when the result gate would show it.
    """
    permission_classes = [IsAuthenticated, IsStudent]

    def post(self, request, pk):
        serializer = SubmitExamSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        ctx = AuthContext.from_request(request)
        outcome = SubmissionService().submit(pk, ctx, serializer.validated_data['answers'])
        submission = outcome.submission

        payload = {
            'submission_id': submission.pk,
            'status': submission.status,
            'needs_manual_review': outcome.needs_manual_review,
            'can_retake': outcome.can_retake,
            'late': outcome.late,
        }
        attempts = summarize_attempts(submission.exam, ctx.student_id).attempts
        if outcome.graded and resolve_visibility(submission.exam, submission, attempts).shown:
            payload['score'] = submission.score
            payload['percentage'] = submission.percentage
        return Response(payload)


class SubmissionResultView(APIView):
    """
    Student result lookup by submission id, or by exam id (latest attempt).
    Filtered by the result gate.
    """
    permission_classes = [IsAuthenticated, IsStudent]

    def get(self, request, pk):
        ctx = AuthContext.from_request(request)
        submission = self._find(pk, ctx.student_id)
        IntegrityMonitor().apply_auto_flag(submission)

        exam = submission.exam
        attempts = summarize_attempts(exam, ctx.student_id).attempts
        visibility = resolve_visibility(exam, submission, attempts)
        if not visibility.shown:
            return Response(withheld_payload(submission, visibility))
        return Response(StudentResultSerializer(submission).data)

    def _find(self, pk, student_id):
        try:
            return get_student_submission(pk, student_id)
        except NotFoundError:
            pass
        try:
            submission = (
                ExamSubmission.objects.select_related('exam')
                .filter(exam_id=pk, student_id=student_id)
                .order_by('-attempt_number')
                .first()
            )
        except (DjangoValidationError, ValueError):
            submission = None
        if submission is None:
            raise NotFoundError('Submission not found')
        return submission


class StudentSubmissionListView(generics.ListAPIView):
    """
    List student's own attempts.

    Security: Filters by request.user automatically (no user_id param).
    Optimization: select_related('exam') prevents N+1 on exam lookups.
    """
    permission_classes = [IsAuthenticated, IsStudent]
    serializer_class = SubmissionListSerializer

    def get_queryset(self):
        return ExamSubmission.objects.filter(
            student=self.request.user
        ).select_related('exam').order_by('-started_at')


# ----------------------------------------------------------------------
# Staff endpoints - different trust boundary, no result gate
# ----------------------------------------------------------------------

class AdminExamSubmissionListView(generics.ListAPIView):
    permission_classes = [IsAuthenticated, IsStaffMember]
    serializer_class = AdminSubmissionListSerializer

    def get_queryset(self):
        exam = get_object_or_404(Exam, pk=self.kwargs['pk'])
        return ExamSubmission.objects.filter(exam=exam).select_related(
            'student'
        ).prefetch_related('suspicious_events').order_by('-score', 'attempt_number')

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['integrity'] = integrity_from_prefetch
        return context


class AdminSubmissionMixin:
    permission_classes = [IsAuthenticated, IsStaffMember]

    def get_submission(self, pk):
        try:
            return ExamSubmission.objects.select_related('exam', 'student').prefetch_related(
                'suspicious_events'
            ).get(pk=pk)
        except ExamSubmission.DoesNotExist:
            raise NotFoundError('Submission not found')

    def detail_response(self, pk):
        submission = self.get_submission(pk)
        IntegrityMonitor().apply_auto_flag(submission)
        serializer = AdminSubmissionDetailSerializer(
            submission, context={'integrity': integrity_from_prefetch}
        )
        return Response(serializer.data)


class AdminSubmissionResultView(AdminSubmissionMixin, APIView):

    def get(self, request, pk):
        return self.detail_response(pk)


class AdminGradeAnswerView(AdminSubmissionMixin, APIView):

    def post(self, request, pk):
        serializer = GradeAnswerSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        GradingService().grade_answer(
            pk,
            data['question_id'],
            data['marks_awarded'],
            data['feedback'],
            AuthContext.from_request(request),
        )
        return self.detail_response(pk)


class AdminRegradeView(AdminSubmissionMixin, APIView):

    def post(self, request, pk):
        self.get_submission(pk)
        ctx = AuthContext.from_request(request)
        ctx.require_staff()
        GradingService().auto_grade(pk, actor_id=ctx.student_id)
        return self.detail_response(pk)


class AdminReviewView(AdminSubmissionMixin, APIView):
    """Clear the review flag and/or record review notes and remarks."""

    def patch(self, request, pk):
        serializer = ReviewSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        ctx = AuthContext.from_request(request)
        self.get_submission(pk)

        if data['clear_flag']:
            IntegrityMonitor().clear_flag(pk, ctx, review_notes=data['review_notes'])
        elif data['review_notes']:
            ExamSubmission.objects.filter(pk=pk).update(
                review_notes=data['review_notes'], updated_at=timezone.now()
            )
        if 'remarks' in data:
            SubmissionService().set_remarks(pk, ctx, data['remarks'])

        return self.detail_response(pk)


class AdminMarkAbsentView(AdminSubmissionMixin, APIView):

    def post(self, request, pk):
        SubmissionService().mark_absent(pk, AuthContext.from_request(request))
        return self.detail_response(pk)
