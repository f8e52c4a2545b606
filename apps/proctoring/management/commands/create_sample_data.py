from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone

from apps.proctoring.models import Batch, Enrollment, Exam, Question

User = get_user_model()


class Command(BaseCommand):
    help = 'Creates a sample batch, students and proctored exams for trying out the API'

    def _student(self, username, first_name, last_name):
        user = User.objects.filter(username=username).first()
        if user is None:
            user = User.objects.create_user(
                username=username,
                email=f'{username}@test.com',
                password='testpass123',
                first_name=first_name,
                last_name=last_name,
                role=User.Role.STUDENT,
            )
            self.stdout.write(self.style.SUCCESS(f'Created user: {username}'))
        return user

    def handle(self, *args, **kwargs):
        self.stdout.write('Creating sample data...')

        alice = self._student('student1', 'Alice', 'Johnson')
        bob = self._student('student2', 'Bob', 'Smith')

        if not User.objects.filter(username='instructor1').exists():
            User.objects.create_user(
                username='instructor1',
                email='instructor1@test.com',
                password='testpass123',
                role=User.Role.INSTRUCTOR,
            )
            self.stdout.write(self.style.SUCCESS('Created user: instructor1'))

        batch, _ = Batch.objects.get_or_create(name='Morning Batch 2024')
        for student in (alice, bob):
            Enrollment.objects.get_or_create(batch=batch, student=student)

        now = timezone.now()

        # Open now, results after the window closes
        bio_exam = Exam.objects.create(
            title='Biology Midterm',
            description='Answer all questions. Negative marking applies to MCQs.',
            status=Exam.Status.PUBLISHED,
            scheduled_at=now - timedelta(minutes=5),
            duration_minutes=90,
            max_attempts=1,
            passing_marks=10,
            negative_marking=True,
            negative_marking_percentage=25,
            security_config={'enforce_fullscreen': True, 'prevent_copy_paste': True},
        )
        bio_exam.batches.add(batch)

        Question.objects.create(
            exam=bio_exam,
            text='Photosynthesis occurs in which organelle?',
            question_type=Question.Type.MCQ,
            options=['Nucleus', 'Chloroplast', 'Ribosome', 'Golgi body'],
            correct_option=1,
            explanation='Chloroplasts contain chlorophyll.',
            marks=5,
            order=1,
        )
        Question.objects.create(
            exam=bio_exam,
            text='What is the powerhouse of the cell?',
            question_type=Question.Type.MCQ,
            options=['Mitochondria', 'Vacuole', 'Lysosome'],
            correct_option=0,
            marks=5,
            order=2,
        )
        Question.objects.create(
            exam=bio_exam,
            text='Explain the process of photosynthesis and its importance to life on Earth.',
            question_type=Question.Type.DESCRIPTIVE,
            marks=10,
            order=3,
        )

        self.stdout.write(self.style.SUCCESS('Created Biology Midterm with 3 questions'))

        # Practice quiz: three attempts, results shown after the last one
        cs_exam = Exam.objects.create(
            title='Introduction to Algorithms Quiz',
            status=Exam.Status.PUBLISHED,
            scheduled_at=now - timedelta(minutes=5),
            end_time=now + timedelta(days=7),
            duration_minutes=30,
            max_attempts=3,
            result_publication=Exam.ResultPublication.IMMEDIATE,
        )
        cs_exam.batches.add(batch)

        Question.objects.create(
            exam=cs_exam,
            text='What is the time complexity of binary search?',
            question_type=Question.Type.MCQ,
            options=['O(n)', 'O(log n)', 'O(n log n)'],
            correct_option=1,
            marks=5,
            order=1,
        )
        Question.objects.create(
            exam=cs_exam,
            text='Which data structure uses LIFO (Last In First Out)?',
            question_type=Question.Type.MCQ,
            options=['Queue', 'Heap', 'Stack'],
            correct_option=2,
            marks=5,
            order=2,
        )

        self.stdout.write(self.style.SUCCESS('Created Algorithms Quiz with 2 questions'))

        self.stdout.write(self.style.SUCCESS('Sample data created successfully!'))
        self.stdout.write('Test credentials: username=student1, password=testpass123')
