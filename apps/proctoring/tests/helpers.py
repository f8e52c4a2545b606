from datetime import timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone

from apps.proctoring.context import AuthContext
from apps.proctoring.models import Batch, Enrollment, Exam, Question

User = get_user_model()


def make_student(username='student1'):
    return User.objects.create_user(
        username=username,
        email=f'{username}@test.com',
        password='pass12345',
        role=User.Role.STUDENT,
    )


def make_staff(username='instructor1'):
    return User.objects.create_user(
        username=username,
        email=f'{username}@test.com',
        password='pass12345',
        role=User.Role.INSTRUCTOR,
    )


def make_exam(students=(), mcq_correct=(0, 1), descriptive=0, marks=5, **overrides):
    """
    Published exam whose window opened ten minutes ago, with one 5-mark MCQ
    per entry in mcq_correct and the given number of descriptive questions.
    Every student passed in gets an active enrollment.
    """
    fields = {
        'title': 'Test Exam',
        'status': Exam.Status.PUBLISHED,
        'scheduled_at': timezone.now() - timedelta(minutes=10),
        'duration_minutes': 60,
        'max_attempts': 1,
    }
    fields.update(overrides)
    exam = Exam.objects.create(**fields)

    batch = Batch.objects.create(name=f'Batch for {exam.title}')
    exam.batches.add(batch)
    for student in students:
        Enrollment.objects.create(batch=batch, student=student)

    order = 0
    for correct in mcq_correct:
        order += 1
        Question.objects.create(
            exam=exam,
            text=f'MCQ {order}',
            question_type=Question.Type.MCQ,
            options=['A', 'B', 'C', 'D'],
            correct_option=correct,
            explanation=f'Option {correct} is right',
            marks=marks,
            order=order,
        )
    for _ in range(descriptive):
        order += 1
        Question.objects.create(
            exam=exam,
            text=f'Essay {order}',
            question_type=Question.Type.DESCRIPTIVE,
            marks=10,
            order=order,
        )
    return exam


def question_ids(exam):
    return [q.pk for q in exam.questions.order_by('order')]


def answers_for(exam, values):
    return [
        {'question_id': qid, 'answer': value}
        for qid, value in zip(question_ids(exam), values)
    ]


def ctx(user):
    return AuthContext.from_user(user)


def failing_sink(entry):
    raise RuntimeError('audit store unavailable')
