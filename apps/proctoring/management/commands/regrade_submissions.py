import logging

from django.core.management.base import BaseCommand

from apps.proctoring.grading_service import GradingService

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Re-runs auto-grading for attempts that were submitted but never graded'

    def add_arguments(self, parser):
        parser.add_argument('--exam', dest='exam_id', help='Only regrade attempts of this exam id')

    def handle(self, *args, **options):
        graded, failed = GradingService().regrade_pending(exam_id=options.get('exam_id'))

        for submission_id in graded:
            self.stdout.write(f'Graded {submission_id}')
        for submission_id in failed:
            self.stdout.write(self.style.ERROR(f'Failed {submission_id}'))

        self.stdout.write(self.style.SUCCESS(
            f'Regrade finished: {len(graded)} graded, {len(failed)} failed'
        ))
