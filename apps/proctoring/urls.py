from django.urls import path
from .views import (
    AdminExamSubmissionListView,
    AdminGradeAnswerView,
    AdminMarkAbsentView,
    AdminRegradeView,
    AdminReviewView,
    AdminSubmissionResultView,
    ExamInstructionsView,
    ExamStartView,
    StudentExamListView,
    StudentSubmissionListView,
    SubmissionAutosaveView,
    SubmissionEventView,
    SubmissionResultView,
    SubmissionSubmitView,
)

urlpatterns = [
    # Exams
    path('exams/', StudentExamListView.as_view(), name='exam-list'),
    path('exams/<uuid:pk>/instructions/', ExamInstructionsView.as_view(), name='exam-instructions'),
    path('exams/<uuid:pk>/start/', ExamStartView.as_view(), name='exam-start'),

    # Attempts
    path('submissions/mine/', StudentSubmissionListView.as_view(), name='submission-list'),
    path('submissions/<uuid:pk>/autosave/', SubmissionAutosaveView.as_view(), name='submission-autosave'),
    path('submissions/<uuid:pk>/events/', SubmissionEventView.as_view(), name='submission-event'),
    path('submissions/<uuid:pk>/submit/', SubmissionSubmitView.as_view(), name='submission-submit'),
    path('results/<uuid:pk>/', SubmissionResultView.as_view(), name='submission-result'),

    # Staff
    path('admin/exams/<uuid:pk>/submissions/', AdminExamSubmissionListView.as_view(), name='admin-exam-submissions'),
    path('admin/submissions/<uuid:pk>/', AdminSubmissionResultView.as_view(), name='admin-submission-result'),
    path('admin/submissions/<uuid:pk>/grade/', AdminGradeAnswerView.as_view(), name='admin-submission-grade'),
    path('admin/submissions/<uuid:pk>/regrade/', AdminRegradeView.as_view(), name='admin-submission-regrade'),
    path('admin/submissions/<uuid:pk>/review/', AdminReviewView.as_view(), name='admin-submission-review'),
    path('admin/submissions/<uuid:pk>/absent/', AdminMarkAbsentView.as_view(), name='admin-submission-absent'),
]
