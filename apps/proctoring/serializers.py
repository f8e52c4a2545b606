from rest_framework import serializers

from .models import Exam, ExamSubmission, Question, SubmissionAnswer, SuspiciousEvent


class SanitizedQuestionSerializer(serializers.ModelSerializer):
    """
    Public question view - excludes correct_option and explanation.
    Students must never see answers before submission.
    """
    class Meta:
        model = Question
        fields = ['id', 'text', 'question_type', 'options', 'marks', 'order']


class SanitizedExamSerializer(serializers.ModelSerializer):
    questions = SanitizedQuestionSerializer(many=True, read_only=True)
    total_marks = serializers.FloatField(read_only=True)

    class Meta:
        model = Exam
        fields = ['id', 'title', 'duration_minutes', 'total_marks',
                  'security_config', 'questions']


class ExamSummarySerializer(serializers.ModelSerializer):
    """Instructions page: everything except the questions themselves."""
    total_marks = serializers.FloatField(read_only=True)
    question_count = serializers.SerializerMethodField()
    description = serializers.SerializerMethodField()

    class Meta:
        model = Exam
        fields = ['id', 'title', 'duration_minutes', 'total_marks', 'passing_marks',
                  'question_count', 'description', 'security_config',
                  'scheduled_at', 'max_attempts']

    def get_question_count(self, obj):
        return len(obj.questions.all())

    def get_description(self, obj):
        return obj.description or obj.instructions


class ExamListSerializer(serializers.ModelSerializer):
    """Student exam list; status fields are filled in by the view."""
    submission_status = serializers.CharField(read_only=True)
    attempts_used = serializers.IntegerField(read_only=True)
    best_result = serializers.DictField(read_only=True, allow_null=True)
    window_end = serializers.DateTimeField(read_only=True)

    class Meta:
        model = Exam
        fields = ['id', 'title', 'duration_minutes', 'scheduled_at', 'window_end',
                  'max_attempts', 'submission_status', 'attempts_used', 'best_result']


class SubmissionStateSerializer(serializers.ModelSerializer):
    """Live attempt state returned by start (new or resumed)."""
    class Meta:
        model = ExamSubmission
        fields = ['id', 'attempt_number', 'status', 'started_at',
                  'draft_answers', 'last_autosave_at']


class SubmissionListSerializer(serializers.ModelSerializer):
    """Lightweight listing - no scores, those go through the result gate."""
    exam_title = serializers.CharField(source='exam.title', read_only=True)

    class Meta:
        model = ExamSubmission
        fields = ['id', 'exam', 'exam_title', 'attempt_number', 'status',
                  'started_at', 'submitted_at']


# ----------------------------------------------------------------------
# Request payloads
# ----------------------------------------------------------------------

class StartExamSerializer(serializers.Serializer):
    session_fingerprint = serializers.CharField(max_length=255)


class AnswerSubmissionSerializer(serializers.Serializer):
    """
    Validates incoming answer data during submission.
    MCQ answers are the chosen option index; blank means unanswered.
    """
    question_id = serializers.UUIDField()
    answer = serializers.CharField(allow_blank=True, allow_null=True, required=False, default='')


class SubmitExamSerializer(serializers.Serializer):
    answers = AnswerSubmissionSerializer(many=True)

    def validate_answers(self, value):
        """Ensure no duplicate question_ids in submission."""
        question_ids = [a['question_id'] for a in value]
        if len(question_ids) != len(set(question_ids)):
            raise serializers.ValidationError(
                "Block double answers for the same question."
            )
        return value


class AutosaveSerializer(serializers.Serializer):
    answers = serializers.ListField(child=serializers.DictField())


class EventReportSerializer(serializers.Serializer):
    event_type = serializers.ChoiceField(choices=SuspiciousEvent.Type.choices)
    metadata = serializers.DictField(required=False, default=dict)
    session_fingerprint = serializers.CharField(max_length=255, required=False)


class GradeAnswerSerializer(serializers.Serializer):
    question_id = serializers.UUIDField()
    marks_awarded = serializers.FloatField(min_value=0)
    feedback = serializers.CharField(allow_blank=True, required=False, default='')


class ReviewSerializer(serializers.Serializer):
    clear_flag = serializers.BooleanField(required=False, default=False)
    review_notes = serializers.CharField(allow_blank=True, required=False, default='')
    remarks = serializers.CharField(allow_blank=True, required=False, max_length=1000)


# ----------------------------------------------------------------------
# Results
# ----------------------------------------------------------------------

class StudentAnswerResultSerializer(serializers.ModelSerializer):
    """
    Answer view for a student's own shown result. Options, correct option and
    explanation are added only when the exam allows it.
    """
    question_id = serializers.UUIDField(source='question.id', read_only=True)
    question_text = serializers.CharField(source='question.text', read_only=True)
    question_type = serializers.CharField(source='question.question_type', read_only=True)
    max_marks = serializers.FloatField(source='question.marks', read_only=True)
    your_answer = serializers.CharField(source='answer', read_only=True)

    class Meta:
        model = SubmissionAnswer
        fields = ['question_id', 'question_text', 'question_type', 'your_answer',
                  'is_correct', 'marks_awarded', 'max_marks', 'feedback']

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if self.context.get('show_correct_answers'):
            data['options'] = instance.question.options
            data['correct_option'] = instance.question.correct_option
            data['explanation'] = instance.question.explanation
        return data


class StudentResultSerializer(serializers.ModelSerializer):
    exam_title = serializers.CharField(source='exam.title', read_only=True)
    total_marks = serializers.FloatField(source='exam.total_marks', read_only=True)
    passing_marks = serializers.FloatField(source='exam.passing_marks', read_only=True)
    passed = serializers.SerializerMethodField()
    answers = serializers.SerializerMethodField()

    class Meta:
        model = ExamSubmission
        fields = ['id', 'exam_title', 'attempt_number', 'status', 'submitted_at',
                  'score', 'percentage', 'total_marks', 'passing_marks', 'passed',
                  'remarks', 'answers']

    def get_passed(self, obj):
        return obj.score >= obj.exam.passing_marks

    def get_answers(self, obj):
        answers = obj.answers.select_related('question').order_by('question__order')
        context = {'show_correct_answers': obj.exam.show_correct_answers}
        return StudentAnswerResultSerializer(answers, many=True, context=context).data


class AdminAnswerSerializer(serializers.ModelSerializer):
    """Staff view - always includes the answer key."""
    question_id = serializers.UUIDField(source='question.id', read_only=True)
    question_text = serializers.CharField(source='question.text', read_only=True)
    question_type = serializers.CharField(source='question.question_type', read_only=True)
    options = serializers.JSONField(source='question.options', read_only=True)
    correct_option = serializers.IntegerField(source='question.correct_option', read_only=True)
    explanation = serializers.CharField(source='question.explanation', read_only=True)
    max_marks = serializers.FloatField(source='question.marks', read_only=True)
    graded_by = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = SubmissionAnswer
        fields = ['question_id', 'question_text', 'question_type', 'options',
                  'correct_option', 'explanation', 'answer', 'is_correct',
                  'marks_awarded', 'max_marks', 'graded_by', 'graded_at', 'feedback']


class SuspiciousEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = SuspiciousEvent
        fields = ['id', 'event_type', 'severity', 'metadata', 'timestamp']


class AdminSubmissionListSerializer(serializers.ModelSerializer):
    student_name = serializers.CharField(source='student.get_full_name', read_only=True)
    student_email = serializers.CharField(source='student.email', read_only=True)
    integrity = serializers.SerializerMethodField()

    class Meta:
        model = ExamSubmission
        fields = ['id', 'student', 'student_name', 'student_email', 'attempt_number',
                  'status', 'score', 'percentage', 'submitted_at',
                  'flagged_for_review', 'late_submission', 'integrity']

    def get_integrity(self, obj):
        return self.context['integrity'](obj).to_dict()


class AdminSubmissionDetailSerializer(AdminSubmissionListSerializer):
    exam_title = serializers.CharField(source='exam.title', read_only=True)
    total_marks = serializers.FloatField(source='exam.total_marks', read_only=True)
    passing_marks = serializers.FloatField(source='exam.passing_marks', read_only=True)
    answers = serializers.SerializerMethodField()
    suspicious_events = SuspiciousEventSerializer(many=True, read_only=True)

    class Meta(AdminSubmissionListSerializer.Meta):
        fields = AdminSubmissionListSerializer.Meta.fields + [
            'exam', 'exam_title', 'total_marks', 'passing_marks', 'started_at',
            'time_spent_seconds', 'review_notes', 'remarks', 'evaluated_by',
            'evaluated_at', 'browser_fingerprint', 'ip_address', 'user_agent',
            'answers', 'suspicious_events',
        ]

    def get_answers(self, obj):
        answers = obj.answers.select_related('question').order_by('question__order')
        return AdminAnswerSerializer(answers, many=True).data
