from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import Batch, Enrollment, Exam, ExamSubmission, Question, SuspiciousEvent, User


@admin.register(User)
class ProctoringUserAdmin(UserAdmin):
    fieldsets = UserAdmin.fieldsets + (('Role', {'fields': ('role',)}),)
    list_display = ('username', 'email', 'role', 'is_staff')


class QuestionInline(admin.TabularInline):
    model = Question
    extra = 0


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ('title', 'status', 'scheduled_at', 'duration_minutes', 'max_attempts')
    list_filter = ('status', 'result_publication')
    inlines = [QuestionInline]


class SuspiciousEventInline(admin.TabularInline):
    model = SuspiciousEvent
    extra = 0
    can_delete = False
    readonly_fields = ('event_type', 'severity', 'metadata', 'timestamp')


@admin.register(ExamSubmission)
class ExamSubmissionAdmin(admin.ModelAdmin):
    list_display = ('exam', 'student', 'attempt_number', 'status', 'score', 'flagged_for_review')
    list_filter = ('status', 'flagged_for_review')
    readonly_fields = ('started_at', 'submitted_at', 'score', 'percentage', 'browser_fingerprint')
    inlines = [SuspiciousEventInline]

    def has_delete_permission(self, request, obj=None):
        return False


admin.site.register(Batch)
admin.site.register(Enrollment)
