import uuid
from datetime import timedelta

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone


class User(AbstractUser):
    class Role(models.TextChoices):
        STUDENT = 'student', 'Student'
        INSTRUCTOR = 'instructor', 'Instructor'
        ADMIN = 'admin', 'Admin'

    role = models.CharField(max_length=20, choices=Role.choices, default=Role.STUDENT)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['email'], name='users_email_4b85f2_idx'),
        ]

    @property
    def is_staff_member(self):
        return self.is_staff or self.role in (self.Role.INSTRUCTOR, self.Role.ADMIN)


# ----------------------------------------------------------------------
# Collaborator data. Batches, enrollments, exams and questions are
# administered elsewhere; the exam-session core only reads them.
# ----------------------------------------------------------------------

class Batch(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'batches'
        ordering = ['name']

    def __str__(self):
        return self.name


class Enrollment(models.Model):
    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        INACTIVE = 'inactive', 'Inactive'
        COMPLETED = 'completed', 'Completed'
        DROPPED = 'dropped', 'Dropped'

    batch = models.ForeignKey(Batch, on_delete=models.CASCADE, related_name='enrollments')
    student = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='enrollments'
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    enrolled_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'enrollments'
        constraints = [
            models.UniqueConstraint(fields=['batch', 'student'], name='unique_batch_student')
        ]
        indexes = [
            models.Index(fields=['student', 'status'], name='enrollments_student_7c1e0a_idx'),
        ]

    def __str__(self):
        return f"{self.student} in {self.batch} ({self.status})"


class Exam(models.Model):
    class Status(models.TextChoices):
        DRAFT = 'draft', 'Draft'
        PUBLISHED = 'published', 'Published'
        COMPLETED = 'completed', 'Completed'

    class ResultPublication(models.TextChoices):
        IMMEDIATE = 'immediate', 'Immediately after final attempt'
        AFTER_EXAM_END = 'after_exam_end', 'After the exam window closes'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    instructions = models.TextField(blank=True)
    batches = models.ManyToManyField(Batch, related_name='exams', blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)

    # Schedule: explicit start/end override scheduled_at + duration
    scheduled_at = models.DateTimeField()
    start_time = models.DateTimeField(null=True, blank=True)
    end_time = models.DateTimeField(null=True, blank=True)
    duration_minutes = models.IntegerField(validators=[MinValueValidator(1)])

    # 0 means unlimited attempts
    max_attempts = models.PositiveIntegerField(default=1)
    passing_marks = models.FloatField(default=0)

    result_publication = models.CharField(
        max_length=20,
        choices=ResultPublication.choices,
        default=ResultPublication.AFTER_EXAM_END
    )
    results_published = models.BooleanField(default=False)
    results_published_at = models.DateTimeField(null=True, blank=True)
    show_correct_answers = models.BooleanField(default=True)

    negative_marking = models.BooleanField(default=False)
    negative_marking_percentage = models.FloatField(
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )

    security_config = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'exams'
        ordering = ['-scheduled_at']

    def __str__(self):
        return self.title

    @property
    def window_start(self):
        return self.start_time or self.scheduled_at

    @property
    def window_end(self):
        if self.end_time:
            return self.end_time
        return self.window_start + timedelta(minutes=self.duration_minutes)

    @property
    def total_marks(self):
        return sum(q.marks for q in self.questions.all())


class Question(models.Model):
    class Type(models.TextChoices):
        MCQ = 'mcq', 'Multiple Choice'
        DESCRIPTIVE = 'descriptive', 'Descriptive'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='questions')
    text = models.TextField()
    question_type = models.CharField(max_length=20, choices=Type.choices, default=Type.MCQ)
    options = models.JSONField(default=list, blank=True)
    # Index into options; only meaningful for MCQ
    correct_option = models.IntegerField(null=True, blank=True)
    explanation = models.TextField(blank=True)
    marks = models.FloatField(default=1, validators=[MinValueValidator(0)])
    order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'questions'
        ordering = ['exam', 'order']
        indexes = [
            models.Index(fields=['exam', 'order'], name='questions_exam_id_3f9d21_idx'),
        ]

    def __str__(self):
        return f"Q{self.order}: {self.text[:50]}"

    def clean(self):
        if self.question_type == self.Type.MCQ:
            if not self.options or len(self.options) < 2:
                raise ValidationError({'options': 'MCQ must have at least 2 options'})
            if self.correct_option is None or not 0 <= self.correct_option < len(self.options):
                raise ValidationError({'correct_option': 'Correct option must index into options'})


# ----------------------------------------------------------------------
# Attempt ledger owned by the exam-session core
# ----------------------------------------------------------------------

class ExamSubmission(models.Model):
    """
    One numbered attempt at an exam by a student. Never deleted.

    The partial unique constraint on (exam, student) while in_progress is what
    actually guarantees a single live attempt; start() relies on it to turn a
    racing double-create into a resume.
    """
    class Status(models.TextChoices):
        IN_PROGRESS = 'in_progress', 'In Progress'
        SUBMITTED = 'submitted', 'Submitted'
        EVALUATED = 'evaluated', 'Evaluated'
        ABSENT = 'absent', 'Absent'
        FLAGGED = 'flagged', 'Flagged'

    CONSUMED_STATUSES = (Status.SUBMITTED, Status.EVALUATED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    exam = models.ForeignKey(Exam, on_delete=models.PROTECT, related_name='submissions')
    student = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='exam_submissions'
    )
    attempt_number = models.PositiveIntegerField(default=1)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.IN_PROGRESS)

    draft_answers = models.JSONField(default=list, blank=True)
    last_autosave_at = models.DateTimeField(null=True, blank=True)

    started_at = models.DateTimeField(default=timezone.now)
    submitted_at = models.DateTimeField(null=True, blank=True)
    time_spent_seconds = models.PositiveIntegerField(null=True, blank=True)
    late_submission = models.BooleanField(default=False)

    score = models.FloatField(default=0)
    percentage = models.FloatField(default=0)

    flagged_for_review = models.BooleanField(default=False)
    flag_cleared_at = models.DateTimeField(null=True, blank=True)
    review_notes = models.TextField(blank=True)
    evaluated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='evaluated_submissions'
    )
    evaluated_at = models.DateTimeField(null=True, blank=True)
    remarks = models.TextField(blank=True, max_length=1000)

    browser_fingerprint = models.CharField(max_length=255, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'exam_submissions'
        ordering = ['-started_at']
        constraints = [
            models.UniqueConstraint(
                fields=['exam', 'student', 'attempt_number'],
                name='unique_exam_student_attempt'
            ),
            models.UniqueConstraint(
                fields=['exam', 'student'],
                condition=models.Q(status='in_progress'),
                name='unique_in_progress_attempt'
            ),
        ]
        indexes = [
            models.Index(fields=['exam', 'student'], name='exam_submis_exam_id_5a0c8e_idx'),
            models.Index(fields=['status'], name='exam_submis_status_91d2b4_idx'),
            models.Index(fields=['student', '-started_at'], name='exam_submis_student_0e6f3c_idx'),
        ]

    def __str__(self):
        return f"{self.student} - {self.exam} (attempt {self.attempt_number})"

    @property
    def is_open(self):
        return self.status == self.Status.IN_PROGRESS


class SubmissionAnswer(models.Model):
    """
    Per-question answer inside an attempt. Seeded blank at start, frozen at
    submit; afterwards only grading writes the scoring fields.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    submission = models.ForeignKey(
        ExamSubmission,
        on_delete=models.CASCADE,
        related_name='answers'
    )
    question = models.ForeignKey(
        Question,
        on_delete=models.PROTECT,
        related_name='student_answers'
    )
    answer = models.TextField(blank=True)
    is_correct = models.BooleanField(null=True, blank=True)
    # Negative when a penalty applies; the submission score is clamped instead
    marks_awarded = models.FloatField(default=0)
    graded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='graded_answers'
    )
    graded_at = models.DateTimeField(null=True, blank=True)
    feedback = models.TextField(blank=True)

    class Meta:
        db_table = 'submission_answers'
        constraints = [
            models.UniqueConstraint(
                fields=['submission', 'question'],
                name='unique_submission_question_answer'
            )
        ]
        indexes = [
            models.Index(fields=['submission'], name='submission__submiss_6b7a10_idx'),
        ]

    def __str__(self):
        return f"Answer to Q{self.question.order} in {self.submission_id}"


class SuspiciousEvent(models.Model):
    """Append-only anti-cheat log entry; one row per reported event."""

    class Type(models.TextChoices):
        TAB_SWITCH = 'tab_switch', 'Tab switch'
        FULLSCREEN_EXIT = 'fullscreen_exit', 'Fullscreen exit'
        COPY_ATTEMPT = 'copy_attempt', 'Copy attempt'
        PASTE_ATTEMPT = 'paste_attempt', 'Paste attempt'
        RIGHT_CLICK = 'right_click', 'Right click'
        CONTEXT_MENU = 'context_menu', 'Context menu'
        DEV_TOOLS_OPEN = 'dev_tools_open', 'Developer tools opened'
        MULTIPLE_SESSIONS = 'multiple_sessions', 'Multiple sessions'
        KEYBOARD_SHORTCUT = 'keyboard_shortcut', 'Keyboard shortcut'
        FOCUS_LOSS = 'focus_loss', 'Focus loss'

    class Severity(models.TextChoices):
        LOW = 'low', 'Low'
        MEDIUM = 'medium', 'Medium'
        HIGH = 'high', 'High'
        CRITICAL = 'critical', 'Critical'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    submission = models.ForeignKey(
        ExamSubmission,
        on_delete=models.CASCADE,
        related_name='suspicious_events'
    )
    event_type = models.CharField(max_length=30, choices=Type.choices)
    severity = models.CharField(max_length=10, choices=Severity.choices, default=Severity.LOW)
    metadata = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'suspicious_events'
        ordering = ['timestamp']
        indexes = [
            models.Index(fields=['submission', 'timestamp'], name='suspicious__submiss_2c4d8f_idx'),
            models.Index(fields=['event_type'], name='suspicious__event_t_8e1b57_idx'),
        ]

    def __str__(self):
        return f"{self.event_type} on {self.submission_id}"
