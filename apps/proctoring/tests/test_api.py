"""
HTTP-level tests: permissions, status codes and what each role gets to see.
"""
from datetime import timedelta

from django.test import override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.proctoring.models import Exam, ExamSubmission, Question

from .helpers import make_exam, make_staff, make_student, question_ids


class ExamApiTestCase(APITestCase):

    def setUp(self):
        self.student = make_student()
        self.client.force_authenticate(user=self.student)

    def _start(self, exam, fingerprint='fp-1'):
        return self.client.post(
            f'/api/exams/{exam.pk}/start/', {'session_fingerprint': fingerprint}, format='json'
        )

    def _submit(self, submission_id, exam, values):
        answers = [
            {'question_id': str(qid), 'answer': str(value)}
            for qid, value in zip(question_ids(exam), values)
        ]
        return self.client.post(
            f'/api/submissions/{submission_id}/submit/', {'answers': answers}, format='json'
        )


class StudentFlowTestCase(ExamApiTestCase):
    """Full attempt through the student endpoints."""

    def test_full_attempt(self):
        exam = make_exam(
            students=[self.student],
            result_publication=Exam.ResultPublication.IMMEDIATE,
        )

        response = self.client.get(f'/api/exams/{exam.pk}/instructions/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['can_resume'])
        self.assertEqual(response.data['attempt_number'], 1)
        self.assertEqual(response.data['exam']['question_count'], 2)

        response = self._start(exam)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['is_resume'])
        submission_id = response.data['submission']['id']

        response = self.client.patch(
            f'/api/submissions/{submission_id}/autosave/',
            {'answers': [{'question_id': 'q', 'answer': '1'}]},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])

        response = self.client.post(
            f'/api/submissions/{submission_id}/events/',
            {'event_type': 'tab_switch', 'session_fingerprint': 'fp-1'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['integrity'], {'score': 1, 'rating': 'good'})
        self.assertFalse(response.data['flagged_for_review'])

        response = self._submit(submission_id, exam, [0, 1])
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], ExamSubmission.Status.EVALUATED)
        self.assertEqual(response.data['score'], 10)
        self.assertFalse(response.data['can_retake'])

        response = self.client.get(f'/api/results/{submission_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['score'], 10)
        self.assertTrue(response.data['passed'])
        self.assertIn('correct_option', response.data['answers'][0])

    def test_resume_returns_drafts(self):
        exam = make_exam(students=[self.student])
        submission_id = self._start(exam).data['submission']['id']
        drafts = [{'question_id': 'q', 'answer': '2'}]
        self.client.patch(f'/api/submissions/{submission_id}/autosave/', {'answers': drafts}, format='json')

        response = self._start(exam)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_resume'])
        self.assertEqual(response.data['submission']['id'], submission_id)
        self.assertEqual(response.data['submission']['draft_answers'], drafts)

        response = self.client.get(f'/api/exams/{exam.pk}/instructions/')
        self.assertTrue(response.data['can_resume'])
        self.assertEqual(str(response.data['submission_id']), submission_id)

    def test_questions_are_sanitized(self):
        exam = make_exam(students=[self.student])
        response = self._start(exam)

        for question in response.data['exam']['questions']:
            self.assertNotIn('correct_option', question)
            self.assertNotIn('explanation', question)
            self.assertIn('options', question)

    def test_exam_list_tracks_status(self):
        exam = make_exam(students=[self.student])
        make_exam(students=[make_student('other')], title='Not mine')

        response = self.client.get('/api/exams/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['exams']), 1)
        self.assertEqual(response.data['exams'][0]['submission_status'], 'available')

        submission_id = self._start(exam).data['submission']['id']
        self._submit(submission_id, exam, [0, 1])

        listed = self.client.get('/api/exams/').data['exams'][0]
        self.assertEqual(listed['submission_status'], 'submitted')
        self.assertEqual(listed['attempts_used'], 1)
        # Window still open, so no score yet
        self.assertNotIn('score', listed['best_result'])

    def test_own_submissions_listed(self):
        exam = make_exam(students=[self.student])
        self._start(exam)

        response = self.client.get('/api/submissions/mine/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertNotIn('score', response.data['results'][0])


class ResultGateApiTestCase(ExamApiTestCase):

    def test_result_withheld_until_exam_ends(self):
        exam = make_exam(students=[self.student])
        submission_id = self._start(exam).data['submission']['id']

        response = self._submit(submission_id, exam, [0, 1])
        self.assertNotIn('score', response.data)

        response = self.client.get(f'/api/results/{submission_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(set(response.data), {'status', 'submitted_at', 'message'})

    def test_published_results_are_shown(self):
        exam = make_exam(students=[self.student])
        submission_id = self._start(exam).data['submission']['id']
        self._submit(submission_id, exam, [0, 3])
        Exam.objects.filter(pk=exam.pk).update(results_published=True)

        response = self.client.get(f'/api/results/{submission_id}/')
        self.assertEqual(response.data['score'], 5)
        self.assertEqual(response.data['percentage'], 50)

    def test_hidden_answer_key(self):
        exam = make_exam(students=[self.student], results_published=True, show_correct_answers=False)
        submission_id = self._start(exam).data['submission']['id']
        self._submit(submission_id, exam, [0, 1])

        response = self.client.get(f'/api/results/{submission_id}/')
        self.assertNotIn('correct_option', response.data['answers'][0])
        self.assertNotIn('explanation', response.data['answers'][0])

    def test_result_by_exam_id_returns_latest_attempt(self):
        exam = make_exam(students=[self.student], results_published=True)
        submission_id = self._start(exam).data['submission']['id']
        self._submit(submission_id, exam, [0, 1])

        response = self.client.get(f'/api/results/{exam.pk}/')
        self.assertEqual(str(response.data['id']), submission_id)

    def test_in_progress_result_is_withheld(self):
        exam = make_exam(students=[self.student], results_published=True)
        submission_id = self._start(exam).data['submission']['id']

        response = self.client.get(f'/api/results/{submission_id}/')
        self.assertEqual(response.data['status'], ExamSubmission.Status.IN_PROGRESS)
        self.assertNotIn('score', response.data)

    def test_other_students_result_is_not_found(self):
        exam = make_exam(students=[self.student], results_published=True)
        submission_id = self._start(exam).data['submission']['id']
        self._submit(submission_id, exam, [0, 1])

        self.client.force_authenticate(user=make_student('intruder'))
        response = self.client.get(f'/api/results/{submission_id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'not_found')


class ErrorResponseTestCase(ExamApiTestCase):

    def test_unauthenticated_request(self):
        self.client.force_authenticate(user=None)
        response = self.client.get('/api/exams/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_instructions_before_window(self):
        exam = make_exam(students=[self.student], scheduled_at=timezone.now() + timedelta(hours=1))

        response = self.client.get(f'/api/exams/{exam.pk}/instructions/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'not_started')
        self.assertIn('minutes_until_start', response.data)
        self.assertEqual(response.data['exam']['title'], exam.title)

    def test_not_enrolled(self):
        exam = make_exam()
        response = self._start(exam)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'not_enrolled')

    def test_concurrent_session(self):
        exam = make_exam(students=[self.student])
        self._start(exam, 'fp-1')

        response = self._start(exam, 'fp-2')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'concurrent_session')

    def test_attempt_limit(self):
        exam = make_exam(students=[self.student])
        submission_id = self._start(exam).data['submission']['id']
        self._submit(submission_id, exam, [0, 1])

        response = self._start(exam)
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'attempt_limit')

        response = self.client.get(f'/api/exams/{exam.pk}/instructions/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['submission_id'], submission_id)

    def test_double_submit(self):
        exam = make_exam(students=[self.student])
        submission_id = self._start(exam).data['submission']['id']
        self._submit(submission_id, exam, [0, 1])

        response = self._submit(submission_id, exam, [1, 1])
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'already_submitted')

    def test_duplicate_question_in_payload(self):
        exam = make_exam(students=[self.student])
        submission_id = self._start(exam).data['submission']['id']
        qid = str(question_ids(exam)[0])

        response = self.client.post(
            f'/api/submissions/{submission_id}/submit/',
            {'answers': [{'question_id': qid, 'answer': '0'}, {'question_id': qid, 'answer': '1'}]},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_event_type(self):
        exam = make_exam(students=[self.student])
        submission_id = self._start(exam).data['submission']['id']

        response = self.client.post(
            f'/api/submissions/{submission_id}/events/', {'event_type': 'screenshot'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_student_cannot_use_staff_endpoints(self):
        exam = make_exam(students=[self.student])
        submission_id = self._start(exam).data['submission']['id']

        response = self.client.get(f'/api/admin/submissions/{submission_id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.get(f'/api/admin/exams/{exam.pk}/submissions/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class StaffApiTestCase(ExamApiTestCase):

    def setUp(self):
        super().setUp()
        self.staff = make_staff()

    def _submitted(self, exam, values):
        submission_id = self._start(exam).data['submission']['id']
        self._submit(submission_id, exam, values)
        return submission_id

    def test_staff_sees_answer_key_before_publication(self):
        exam = make_exam(students=[self.student])
        submission_id = self._submitted(exam, [0, 2])

        self.client.force_authenticate(user=self.staff)
        response = self.client.get(f'/api/admin/submissions/{submission_id}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['score'], 5)
        self.assertEqual(response.data['answers'][0]['correct_option'], 0)
        self.assertEqual(response.data['integrity'], {'score': 0, 'rating': 'excellent'})

    def test_staff_cannot_take_exams(self):
        exam = make_exam(students=[self.student])
        self.client.force_authenticate(user=self.staff)
        response = self._start(exam)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_submission_list_ordered_by_score(self):
        exam = make_exam(students=[self.student])
        other = make_student('student2')
        exam.batches.first().enrollments.create(student=other)
        self._submitted(exam, [0, 3])
        self.client.force_authenticate(user=other)
        self._submitted(exam, [0, 1])

        self.client.force_authenticate(user=self.staff)
        response = self.client.get(f'/api/admin/exams/{exam.pk}/submissions/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        scores = [row['score'] for row in response.data['results']]
        self.assertEqual(scores, [10, 5])

    def test_manual_grading(self):
        exam = make_exam(students=[self.student], mcq_correct=(0,), descriptive=1)
        submission_id = self._submitted(exam, [0, 'Photosynthesis converts light'])
        essay = exam.questions.get(question_type=Question.Type.DESCRIPTIVE)

        self.client.force_authenticate(user=self.staff)
        response = self.client.post(
            f'/api/admin/submissions/{submission_id}/grade/',
            {'question_id': str(essay.pk), 'marks_awarded': 7, 'feedback': 'Good'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], ExamSubmission.Status.EVALUATED)
        self.assertEqual(response.data['score'], 12)

    def test_grade_above_question_marks(self):
        exam = make_exam(students=[self.student], mcq_correct=(0,), descriptive=1)
        submission_id = self._submitted(exam, [0, 'Essay'])
        essay = exam.questions.get(question_type=Question.Type.DESCRIPTIVE)

        self.client.force_authenticate(user=self.staff)
        response = self.client.post(
            f'/api/admin/submissions/{submission_id}/grade/',
            {'question_id': str(essay.pk), 'marks_awarded': 50},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_answer')

    def test_review_clears_flag(self):
        exam = make_exam(students=[self.student])
        submission_id = self._start(exam).data['submission']['id']
        self.client.post(
            f'/api/submissions/{submission_id}/events/', {'event_type': 'dev_tools_open'}, format='json'
        )

        self.client.force_authenticate(user=self.staff)
        response = self.client.get(f'/api/admin/submissions/{submission_id}/')
        self.assertTrue(response.data['flagged_for_review'])

        response = self.client.patch(
            f'/api/admin/submissions/{submission_id}/review/',
            {'clear_flag': True, 'review_notes': 'Checked recording', 'remarks': 'Fine'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['flagged_for_review'])
        self.assertEqual(response.data['review_notes'], 'Checked recording')
        self.assertEqual(response.data['remarks'], 'Fine')
        # Events are kept after clearance
        self.assertEqual(len(response.data['suspicious_events']), 1)

    def test_mark_absent_and_regrade(self):
        exam = make_exam(students=[self.student])
        submission_id = self._start(exam).data['submission']['id']

        self.client.force_authenticate(user=self.staff)
        response = self.client.post(f'/api/admin/submissions/{submission_id}/absent/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], ExamSubmission.Status.ABSENT)

        response = self.client.post(f'/api/admin/submissions/{submission_id}/regrade/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'invalid_state')

    def test_regrade_open_attempt_conflicts(self):
        exam = make_exam(students=[self.student])
        submission_id = self._start(exam).data['submission']['id']

        self.client.force_authenticate(user=self.staff)
        response = self.client.post(f'/api/admin/submissions/{submission_id}/regrade/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'invalid_state')
        self.assertEqual(
            ExamSubmission.objects.get(pk=submission_id).status, ExamSubmission.Status.IN_PROGRESS
        )


class ClientAddressTestCase(ExamApiTestCase):
    """The recorded IP comes from proxy headers only when they are trusted."""

    def _start_from(self, exam, **headers):
        response = self.client.post(
            f'/api/exams/{exam.pk}/start/', {'session_fingerprint': 'fp-1'}, format='json', **headers
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return ExamSubmission.objects.get(pk=response.data['submission']['id'])

    def test_forwarded_header_ignored_by_default(self):
        exam = make_exam(students=[self.student])
        submission = self._start_from(exam, HTTP_X_FORWARDED_FOR='203.0.113.9', HTTP_X_REAL_IP='203.0.113.10')
        self.assertEqual(submission.ip_address, '127.0.0.1')

    @override_settings(TRUST_X_FORWARDED_FOR=True)
    def test_forwarded_header_used_behind_trusted_proxy(self):
        exam = make_exam(students=[self.student])
        submission = self._start_from(exam, HTTP_X_FORWARDED_FOR='203.0.113.9, 10.0.0.1')
        self.assertEqual(submission.ip_address, '203.0.113.9')

    @override_settings(TRUST_X_FORWARDED_FOR=True)
    def test_malformed_forwarded_header_is_dropped(self):
        exam = make_exam(students=[self.student])
        submission = self._start_from(exam, HTTP_X_FORWARDED_FOR='not-an-ip')
        self.assertIsNone(submission.ip_address)
