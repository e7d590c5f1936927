"""
Test cases for the Learning Platform quiz engine.
Covers scoring, eligibility, sanitizing, attempt history and the API.
"""
import random
import threading
from datetime import datetime, timedelta
from decimal import Decimal
from unittest import mock, skipUnless
from zoneinfo import ZoneInfo

from django.contrib.auth.models import User
from django.core.cache import cache
from django.db import connection
from django.test import SimpleTestCase, TestCase, TransactionTestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APITestCase

from .exceptions import AttemptsExhausted
from .grading import QuestionSpec, QuizSnapshot, ScoringEngine
from .models import Course, Module, CourseEnrollment, Quiz, Question, QuizAttempt, UserProfile
from .services import (
    AttemptRepository, Eligibility, EligibilityGate, QuizAttemptService,
    QuizSanitizer, best_score
)

MC = Question.QuestionType.MULTIPLE_CHOICE
TF = Question.QuestionType.TRUE_FALSE
SHORT = Question.QuestionType.SHORT_ANSWER
ESSAY = Question.QuestionType.ESSAY
MATCHING = Question.QuestionType.MATCHING


def make_snapshot(*questions, passing_score=60, auto_grade=True):
    return QuizSnapshot(
        quiz_id=1,
        passing_score=passing_score,
        auto_grade=auto_grade,
        questions=tuple(
            QuestionSpec(question_id=qid, question_type=qtype, correct_answer=answer, points=points)
            for qid, qtype, answer, points in questions
        ),
    )


class QuizFixtureMixin:
    """Course, module, enrolled student and the two-question example quiz."""

    def setUp(self):
        cache.clear()
        self.student = User.objects.create_user('student', 'student@test.com', 'pass123')
        self.token = Token.objects.create(user=self.student)

        self.course = Course.objects.create(title='Geography', slug='geography')
        self.module = Module.objects.create(course=self.course, title='Europe', order=1)
        self.enrollment = CourseEnrollment.objects.create(course=self.course, student=self.student)

        self.quiz = self.make_quiz()
        self.q1 = Question.objects.create(
            quiz=self.quiz, order=1, title='Pick A', content='Which is A?',
            question_type=MC, points=Decimal('10'), correct_answer='A',
            options=[
                {'id': 'A', 'text': 'A', 'is_correct': True},
                {'id': 'B', 'text': 'B', 'is_correct': False},
                {'id': 'C', 'text': 'C', 'is_correct': False},
            ],
            explanation='A is A.',
        )
        self.q2 = Question.objects.create(
            quiz=self.quiz, order=2, title='Capital', content='Capital of France?',
            question_type=SHORT, points=Decimal('5'), correct_answer='Paris',
        )

    def make_quiz(self, **overrides):
        fields = {
            'title': 'Capitals',
            'course': self.course,
            'module': self.module,
            'passing_score': Decimal('60'),
            'total_points': Decimal('15'),
            'max_attempts': 1,
            'is_published': True,
        }
        fields.update(overrides)
        return Quiz.objects.create(**fields)

    def add_attempt(self, score, quiz=None, student=None):
        quiz = quiz or self.quiz
        student = student or self.student
        number = QuizAttempt.objects.filter(student=student, quiz=quiz).count() + 1
        return QuizAttempt.objects.create(
            student=student, quiz=quiz, course=quiz.course, module=quiz.module,
            attempt_number=number, score=Decimal(str(score)), passed=score >= 60,
            earned_points=Decimal('0'), total_points=Decimal('15'),
            results=[
                {'question_id': str(self.q1.pk), 'user_answer': 'B', 'correct_answer': 'A',
                 'is_correct': False, 'points': 10.0, 'earned_points': 0.0},
                {'question_id': str(self.q2.pk), 'user_answer': 'paris', 'correct_answer': 'Paris',
                 'is_correct': True, 'points': 5.0, 'earned_points': 5.0},
            ],
        )


# =============================================================================
# SCORING
# =============================================================================

class ScoringEngineTests(SimpleTestCase):
    """Tests for per-question grading and aggregate scores."""

    def setUp(self):
        self.engine = ScoringEngine()

    def test_all_correct_passes(self):
        """MC 'A' and case-different short answer earn full marks."""
        quiz = make_snapshot(('q1', MC, 'A', 10.0), ('q2', SHORT, 'Paris', 5.0))
        summary = self.engine.score(quiz, {'q1': 'A', 'q2': 'paris'})
        self.assertEqual(summary.score, 100.0)
        self.assertTrue(summary.passed)
        self.assertEqual(summary.earned_points, 15.0)
        self.assertEqual(summary.total_points, 15.0)

    def test_partial_score_fails(self):
        """Wrong MC answer leaves 5 of 15 points."""
        quiz = make_snapshot(('q1', MC, 'A', 10.0), ('q2', SHORT, 'Paris', 5.0))
        summary = self.engine.score(quiz, {'q1': 'B', 'q2': 'Paris'})
        self.assertEqual(summary.score, 33.33)
        self.assertFalse(summary.passed)
        self.assertEqual(summary.earned_points, 5.0)

    def test_zero_point_quiz_scores_zero(self):
        quiz = make_snapshot(('q1', MC, 'A', 0.0), ('q2', TF, True, 0.0))
        summary = self.engine.score(quiz, {'q1': 'A', 'q2': True})
        self.assertEqual(summary.score, 0.0)
        self.assertEqual(summary.total_points, 0.0)

    def test_empty_quiz_scores_zero(self):
        summary = self.engine.score(make_snapshot(), {})
        self.assertEqual(summary.score, 0.0)
        self.assertFalse(summary.passed)

    def test_choice_answers_compare_by_string_form(self):
        """true/"true" and 2/"2" are the same answer."""
        quiz = make_snapshot(
            ('tf1', TF, True, 1.0),
            ('tf2', TF, 'false', 1.0),
            ('mc1', MC, 2, 1.0),
            ('mc2', MC, '3', 1.0),
        )
        summary = self.engine.score(quiz, {'tf1': 'true', 'tf2': False, 'mc1': '2', 'mc2': 3.0})
        self.assertTrue(all(r.is_correct for r in summary.results))
        self.assertEqual(summary.score, 100.0)

    def test_choice_answer_is_case_sensitive(self):
        quiz = make_snapshot(('q1', MC, 'A', 1.0))
        summary = self.engine.score(quiz, {'q1': 'a'})
        self.assertFalse(summary.results[0].is_correct)

    def test_short_answer_ignores_case_and_whitespace(self):
        quiz = make_snapshot(('q1', SHORT, 'Paris', 5.0))
        for answer in ('Paris ', 'paris', ' PARIS', '\tpArIs\n'):
            with self.subTest(answer=answer):
                summary = self.engine.score(quiz, {'q1': answer})
                self.assertTrue(summary.results[0].is_correct)
                self.assertEqual(summary.results[0].earned_points, 5.0)

    def test_short_answer_wrong(self):
        quiz = make_snapshot(('q1', SHORT, 'Paris', 5.0))
        summary = self.engine.score(quiz, {'q1': 'Lyon'})
        self.assertFalse(summary.results[0].is_correct)

    def test_essay_and_matching_never_earn_points(self):
        quiz = make_snapshot(
            ('e1', ESSAY, 'Anything', 10.0),
            ('m1', MATCHING, {'a': '1', 'b': '2'}, 10.0),
        )
        summary = self.engine.score(quiz, {'e1': 'Anything', 'm1': {'a': '1', 'b': '2'}})
        for result in summary.results:
            self.assertFalse(result.is_correct)
            self.assertEqual(result.earned_points, 0)
        self.assertEqual(summary.pending_review, 2)
        self.assertEqual(summary.score, 0.0)

    def test_unanswered_question_is_wrong(self):
        quiz = make_snapshot(('q1', MC, 'A', 4.0), ('q2', TF, 'true', 4.0))
        summary = self.engine.score(quiz, {'q1': 'A'})
        self.assertEqual(summary.score, 50.0)
        self.assertIsNone(summary.results[1].user_answer)
        self.assertFalse(summary.results[1].is_correct)

    def test_auto_grade_off_defers_everything(self):
        quiz = make_snapshot(('q1', MC, 'A', 4.0), auto_grade=False)
        summary = self.engine.score(quiz, {'q1': 'A'})
        self.assertFalse(summary.results[0].is_correct)
        self.assertEqual(summary.pending_review, 1)

    def test_pass_threshold_is_inclusive(self):
        quiz = make_snapshot(('q1', MC, 'A', 3.0), ('q2', MC, 'A', 2.0), passing_score=60)
        summary = self.engine.score(quiz, {'q1': 'A', 'q2': 'B'})
        self.assertEqual(summary.score, 60.0)
        self.assertTrue(summary.passed)

    def test_percentage_rounds_half_up(self):
        """1 of 160 points is 0.625%, stored as 0.63."""
        quiz = make_snapshot(('q1', MC, 'A', 1.0), ('q2', MC, 'A', 159.0))
        summary = self.engine.score(quiz, {'q1': 'A'})
        self.assertEqual(summary.score, 0.63)
        self.assertEqual(ScoringEngine.percentage(1, 8), 12.5)
        self.assertEqual(ScoringEngine.percentage(2, 3), 66.67)
        self.assertEqual(ScoringEngine.percentage(1, 3), 33.33)

    def test_list_answer_uses_comma_joined_form(self):
        """A one-item list answers like its item; longer lists join with commas."""
        quiz = make_snapshot(('q1', MC, 'A', 1.0), ('q2', MC, 'A,B', 1.0), ('q3', SHORT, 'Paris', 1.0))
        summary = self.engine.score(quiz, {'q1': ['A'], 'q2': ['A', 'B'], 'q3': [' paris ']})
        self.assertTrue(all(r.is_correct for r in summary.results))

        summary = self.engine.score(quiz, {'q1': ['A', 'B']})
        self.assertFalse(summary.results[0].is_correct)

    def test_best_score(self):
        self.assertEqual(best_score([40, 85, 60]), 85)
        self.assertEqual(best_score([Decimal('33.33'), Decimal('12.5')]), 33.33)


# =============================================================================
# ELIGIBILITY
# =============================================================================

class EligibilityGateTests(QuizFixtureMixin, TestCase):
    """Tests for the ordered availability checks."""

    def setUp(self):
        super().setUp()
        self.gate = EligibilityGate()

    def check(self, quiz=None, attempts=0, course_id=None, now=None):
        return self.gate.check(
            self.student, course_id or self.course.id, quiz or self.quiz, attempts, now=now
        )

    def test_eligible(self):
        self.assertEqual(self.check(), Eligibility.ELIGIBLE)

    def test_not_enrolled_wins_over_everything(self):
        self.enrollment.delete()
        self.quiz.is_published = False
        self.assertEqual(self.check(attempts=5), Eligibility.NOT_ENROLLED)

    def test_dropped_enrollment_is_not_enrolled(self):
        self.enrollment.status = CourseEnrollment.Status.DROPPED
        self.enrollment.save()
        self.assertEqual(self.check(), Eligibility.NOT_ENROLLED)

    def test_completed_enrollment_still_enrolled(self):
        self.enrollment.status = CourseEnrollment.Status.COMPLETED
        self.enrollment.save()
        self.assertEqual(self.check(), Eligibility.ELIGIBLE)

    def test_unpublished_quiz(self):
        self.quiz.is_published = False
        self.assertEqual(self.check(), Eligibility.NOT_PUBLISHED)

    def test_quiz_from_other_course_looks_unpublished(self):
        other = Course.objects.create(title='History', slug='history')
        CourseEnrollment.objects.create(course=other, student=self.student)
        self.assertEqual(self.check(course_id=other.id), Eligibility.NOT_PUBLISHED)

    def test_missing_quiz_looks_unpublished(self):
        outcome = self.gate.check(self.student, self.course.id, None, 0)
        self.assertEqual(outcome, Eligibility.NOT_PUBLISHED)

    def test_not_yet_available(self):
        self.quiz.available_from = timezone.now() + timedelta(hours=1)
        self.assertEqual(self.check(), Eligibility.NOT_YET_AVAILABLE)

    def test_expired(self):
        self.quiz.available_until = timezone.now() - timedelta(minutes=1)
        self.assertEqual(self.check(), Eligibility.EXPIRED)

    def test_window_checked_before_attempts(self):
        self.quiz.available_until = timezone.now() - timedelta(minutes=1)
        self.assertEqual(self.check(attempts=1), Eligibility.EXPIRED)

    def test_max_attempts_reached(self):
        self.assertEqual(self.check(attempts=1), Eligibility.MAX_ATTEMPTS_REACHED)

    @override_settings(QUIZ_ENGINE={'REFERENCE_TIMEZONE': 'Asia/Dhaka'})
    def test_naive_now_is_read_in_reference_timezone(self):
        """Midnight in Dhaka is 18:00 UTC the previous day."""
        self.quiz.available_from = datetime(2026, 3, 1, 0, 0, tzinfo=ZoneInfo('Asia/Dhaka'))
        self.assertEqual(self.check(now=datetime(2026, 2, 28, 23, 30)), Eligibility.NOT_YET_AVAILABLE)
        self.assertEqual(self.check(now=datetime(2026, 3, 1, 0, 30)), Eligibility.ELIGIBLE)

    def test_aware_now_in_any_zone(self):
        self.quiz.available_until = datetime(2026, 3, 1, 12, 0, tzinfo=ZoneInfo('UTC'))
        before = datetime(2026, 3, 1, 17, 59, tzinfo=ZoneInfo('Asia/Dhaka'))
        after = datetime(2026, 3, 1, 18, 1, tzinfo=ZoneInfo('Asia/Dhaka'))
        self.assertEqual(self.check(now=before), Eligibility.ELIGIBLE)
        self.assertEqual(self.check(now=after), Eligibility.EXPIRED)


# =============================================================================
# SANITIZER
# =============================================================================

class QuizSanitizerTests(QuizFixtureMixin, TestCase):
    """Tests for answer redaction and shuffling."""

    def test_unattempted_quiz_hides_answers(self):
        data = QuizSanitizer().for_attempt(self.quiz, prior_attempts=0)
        self.assertFalse(data['completed'])
        for question in data['questions']:
            self.assertNotIn('correct_answer', question)
            self.assertNotIn('explanation', question)
            for option in question['options']:
                self.assertEqual(set(option), {'id', 'text'})

    def test_answers_hidden_even_when_quiz_shows_them(self):
        self.quiz.show_correct_answers = True
        data = QuizSanitizer().for_attempt(self.quiz, prior_attempts=0)
        for question in data['questions']:
            self.assertNotIn('correct_answer', question)
            self.assertNotIn('explanation', question)
            for option in question['options']:
                self.assertNotIn('is_correct', option)

    def test_metadata(self):
        self.quiz.max_attempts = 3
        self.quiz.time_limit = 20
        data = QuizSanitizer().for_attempt(self.quiz, prior_attempts=1)
        self.assertEqual(data['metadata']['attempt_number'], 2)
        self.assertEqual(data['metadata']['max_attempts'], 3)
        self.assertEqual(data['metadata']['attempts_remaining'], 2)
        self.assertEqual(data['metadata']['time_limit'], 20)

    def test_question_order_without_shuffle(self):
        data = QuizSanitizer().for_attempt(self.quiz, prior_attempts=0)
        self.assertEqual([q['id'] for q in data['questions']], [str(self.q1.pk), str(self.q2.pk)])
        self.assertEqual([o['id'] for o in data['questions'][0]['options']], ['A', 'B', 'C'])

    def test_shuffle_questions_keeps_membership(self):
        for i in range(3, 8):
            Question.objects.create(
                quiz=self.quiz, order=i, title=f'Q{i}', content='?',
                question_type=SHORT, points=Decimal('1'), correct_answer='x'
            )
        self.quiz.shuffle_questions = True
        sanitizer = QuizSanitizer(rng=random.Random(42))
        expected = sorted(str(q.pk) for q in self.quiz.questions.all())

        orders = set()
        for _ in range(20):
            ids = [q['id'] for q in sanitizer.for_attempt(self.quiz, 0)['questions']]
            self.assertEqual(sorted(ids), expected)
            orders.add(tuple(ids))
        self.assertGreater(len(orders), 1)

    def test_shuffle_options_keeps_membership(self):
        self.quiz.shuffle_options = True
        sanitizer = QuizSanitizer(rng=random.Random(3))
        seen = set()
        for _ in range(20):
            options = sanitizer.for_attempt(self.quiz, 0)['questions'][0]['options']
            self.assertEqual(sorted(o['id'] for o in options), ['A', 'B', 'C'])
            seen.add(tuple(o['id'] for o in options))
        self.assertGreater(len(seen), 1)

    def test_review_hides_answers_when_not_shown(self):
        self.quiz.show_correct_answers = False
        attempt = self.add_attempt(33.33)
        data = QuizSanitizer().for_review(self.quiz, attempt, attempt_count=1)
        self.assertTrue(data['completed'])
        for question in data['questions']:
            self.assertNotIn('correct_answer', question)
            self.assertNotIn('explanation', question)
            self.assertIn('user_answer', question)
        self.assertEqual(data['submission']['score'], 33.33)

    def test_review_reveals_answers_when_shown(self):
        attempt = self.add_attempt(33.33)
        data = QuizSanitizer().for_review(self.quiz, attempt, attempt_count=1)
        first = data['questions'][0]
        self.assertEqual(first['correct_answer'], 'A')
        self.assertEqual(first['explanation'], 'A is A.')
        self.assertEqual(first['title'], 'Pick A')
        self.assertEqual(data['metadata']['attempts_remaining'], 0)


# =============================================================================
# ATTEMPT LIFECYCLE
# =============================================================================

class QuizAttemptServiceTests(QuizFixtureMixin, TestCase):
    """Tests for submission recording and attempt history."""

    def setUp(self):
        super().setUp()
        self.service = QuizAttemptService()

    def submit(self, answers):
        return self.service.submit_attempt(self.student, self.course.id, self.quiz.id, answers, time_taken=60)

    def test_submission_is_appended(self):
        self.quiz.max_attempts = 2
        self.quiz.save()
        self.submit({str(self.q1.pk): 'B'})
        self.submit({str(self.q1.pk): 'A'})
        attempts = list(QuizAttempt.objects.filter(student=self.student, quiz=self.quiz))
        self.assertEqual([a.attempt_number for a in attempts], [1, 2])
        self.assertEqual([float(a.score) for a in attempts], [0.0, 66.67])

    def test_attempt_cannot_be_modified(self):
        self.submit({str(self.q1.pk): 'A'})
        attempt = QuizAttempt.objects.get(student=self.student, quiz=self.quiz)
        attempt.score = Decimal('100')
        with self.assertRaises(ValueError):
            attempt.save()

    def test_exhausted_after_max_attempts(self):
        self.submit({str(self.q1.pk): 'A'})
        with self.assertRaises(AttemptsExhausted):
            self.submit({str(self.q1.pk): 'A'})
        self.assertEqual(QuizAttempt.objects.filter(quiz=self.quiz).count(), 1)

    def test_interleaved_submissions_cannot_both_succeed(self):
        """Both requests read a count of zero before either writes."""
        self.submit({str(self.q1.pk): 'A'})
        with mock.patch.object(AttemptRepository, 'count_for', return_value=0):
            with self.assertRaises(AttemptsExhausted):
                self.submit({str(self.q1.pk): 'A'})
        self.assertEqual(QuizAttempt.objects.filter(quiz=self.quiz).count(), 1)

    def test_scoring_uses_question_points_not_stored_total(self):
        Quiz.objects.filter(pk=self.quiz.pk).update(total_points=Decimal('100'))
        result = self.submit({str(self.q1.pk): 'A', str(self.q2.pk): 'paris'})
        self.assertEqual(result['total_points'], 15.0)
        self.assertEqual(result['score'], 100.0)

    def test_results_history(self):
        self.quiz.max_attempts = 3
        self.quiz.save()
        for score in (40, 85, 60):
            self.add_attempt(score)
        data = self.service.get_results(self.student, self.course.id, self.quiz.id)
        self.assertEqual(data['best_score'], 85)
        self.assertEqual([s['attempt_number'] for s in data['submissions']], [1, 2, 3])
        self.assertEqual(data['latest_attempt']['score'], 60.0)

    def test_results_latest_attempt_redacted(self):
        self.quiz.show_correct_answers = False
        self.quiz.save()
        self.add_attempt(40)
        data = self.service.get_results(self.student, self.course.id, self.quiz.id)
        for result in data['latest_attempt']['results']:
            self.assertEqual(set(result), {'question_id', 'user_answer', 'is_correct'})


@skipUnless(connection.vendor == 'postgresql', "Row locking needs PostgreSQL")
class ParallelSubmissionTests(QuizFixtureMixin, TransactionTestCase):
    """Identical submissions sent at the same moment from separate connections."""

    def test_only_one_parallel_submission_is_recorded(self):
        barrier = threading.Barrier(2)
        outcomes = []

        def submit():
            try:
                barrier.wait()
                QuizAttemptService().submit_attempt(
                    self.student, self.course.id, self.quiz.id, {str(self.q1.pk): 'A'}
                )
                outcomes.append('recorded')
            except AttemptsExhausted:
                outcomes.append('exhausted')
            finally:
                connection.close()

        threads = [threading.Thread(target=submit) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sorted(outcomes), ['exhausted', 'recorded'])
        self.assertEqual(QuizAttempt.objects.filter(quiz=self.quiz).count(), 1)


# =============================================================================
# API
# =============================================================================

class StudentQuizAPITests(QuizFixtureMixin, APITestCase):
    """Tests for the student quiz endpoints."""

    def setUp(self):
        super().setUp()
        self.client.credentials(HTTP_AUTHORIZATION=f'Token {self.token.key}')
        self.url = f'/api/courses/{self.course.id}/quizzes/{self.quiz.id}/'

    def submit(self, answers, **extra):
        return self.client.post(self.url + 'submit/', {'answers': answers, **extra}, format='json')

    def test_requires_authentication(self):
        self.client.credentials()
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_get_quiz_is_sanitized(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['completed'])
        self.assertEqual(len(response.data['questions']), 2)
        for question in response.data['questions']:
            self.assertNotIn('correct_answer', question)
            self.assertNotIn('explanation', question)
        self.assertEqual(response.data['metadata']['attempt_number'], 1)

    def test_submit_full_marks(self):
        response = self.submit({str(self.q1.pk): 'A', str(self.q2.pk): 'paris'}, time_taken=120)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['score'], 100.0)
        self.assertTrue(response.data['passed'])
        self.assertEqual(response.data['earned_points'], 15.0)
        self.assertEqual(response.data['total_points'], 15.0)
        self.assertEqual(response.data['details']['correct_answers'], 2)
        self.assertEqual(response.data['details']['time_taken'], 120)
        self.assertEqual(response.data['results'][0]['correct_answer'], 'A')

    def test_submit_partial(self):
        response = self.submit({str(self.q1.pk): 'B', str(self.q2.pk): 'Paris'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['score'], 33.33)
        self.assertFalse(response.data['passed'])

    def test_submit_results_redacted_when_answers_hidden(self):
        self.quiz.show_correct_answers = False
        self.quiz.save()
        response = self.submit({str(self.q1.pk): 'B'})
        for result in response.data['results']:
            self.assertEqual(set(result), {'question_id', 'user_answer', 'is_correct'})

    def test_second_submission_rejected(self):
        self.submit({str(self.q1.pk): 'A'})
        response = self.submit({str(self.q1.pk): 'A'})
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'attempts_exhausted')

    def test_get_after_exhausted_returns_review(self):
        self.submit({str(self.q1.pk): 'B', str(self.q2.pk): 'Paris'})
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['completed'])
        self.assertEqual(response.data['submission']['score'], 33.33)
        self.assertEqual(response.data['metadata']['attempt_number'], 1)

    def test_get_after_exhausted_without_review(self):
        self.quiz.allow_review = False
        self.quiz.save()
        self.submit({str(self.q1.pk): 'A'})
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'attempts_exhausted')

    def test_review_on_request_with_attempts_left(self):
        self.quiz.max_attempts = 2
        self.quiz.save()
        self.submit({str(self.q1.pk): 'A'})
        fresh = self.client.get(self.url)
        self.assertFalse(fresh.data['completed'])
        self.assertEqual(fresh.data['metadata']['attempt_number'], 2)
        review = self.client.get(self.url, {'review': 'true'})
        self.assertTrue(review.data['completed'])

    def test_not_enrolled(self):
        self.enrollment.delete()
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'not_enrolled')

    def test_unpublished_quiz_is_not_found(self):
        self.quiz.is_published = False
        self.quiz.save()
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'not_found')

    def test_missing_quiz_is_not_found(self):
        response = self.client.get(f'/api/courses/{self.course.id}/quizzes/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'not_found')

    def test_not_yet_available(self):
        self.quiz.available_from = timezone.now() + timedelta(days=1)
        self.quiz.save()
        response = self.submit({str(self.q1.pk): 'A'})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'not_yet_available')

    def test_expired(self):
        self.quiz.available_until = timezone.now() - timedelta(days=1)
        self.quiz.save()
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'expired')

    def test_unknown_question_rejected(self):
        response = self.submit({'424242': 'A'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'validation_failed')
        self.assertFalse(QuizAttempt.objects.exists())

    def test_malformed_payload_rejected(self):
        response = self.client.post(self.url + 'submit/', {'answers': ['A']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'validation_failed')

    def test_results_endpoint(self):
        self.submit({str(self.q1.pk): 'A', str(self.q2.pk): 'Paris'})
        response = self.client.get(self.url + 'results/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['best_score'], 100.0)
        self.assertEqual(len(response.data['submissions']), 1)

    def test_results_without_submissions(self):
        response = self.client.get(self.url + 'results/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_my_quizzes(self):
        self.submit({str(self.q1.pk): 'A'})
        response = self.client.get('/api/my-quizzes/', {'course_id': self.course.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['quiz_title'], 'Capitals')

    def test_my_quizzes_filters_by_course(self):
        self.submit({str(self.q1.pk): 'A'})
        other = Course.objects.create(title='History', slug='history')
        response = self.client.get('/api/my-quizzes/', {'course_id': other.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 0)

    def test_my_quizzes_rejects_non_numeric_course(self):
        response = self.client.get('/api/my-quizzes/', {'course_id': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'validation_failed')
        self.assertIn('course_id', response.data['errors'])


class QuizManagementAPITests(QuizFixtureMixin, APITestCase):
    """Tests for instructor quiz management and statistics."""

    def setUp(self):
        super().setUp()
        self.instructor = User.objects.create_user('instructor', 'instructor@test.com', 'pass123')
        self.instructor.profile.role = UserProfile.Role.INSTRUCTOR
        self.instructor.profile.save()
        self.instructor_token = Token.objects.create(user=self.instructor)
        self.client.credentials(HTTP_AUTHORIZATION=f'Token {self.instructor_token.key}')

    def payload(self, **overrides):
        data = {
            'title': 'New Quiz',
            'course': self.course.id,
            'module': self.module.id,
            'questions': [
                {'title': 'One', 'content': '1?', 'question_type': 'multiple-choice', 'points': '4',
                 'order': 1, 'options': [{'text': 'yes', 'is_correct': True}, {'text': 'no'}],
                 'correct_answer': 'yes'},
                {'title': 'Two', 'content': '2?', 'question_type': 'essay', 'points': '6',
                 'order': 2, 'correct_answer': 'rubric'},
            ],
        }
        data.update(overrides)
        return data

    def test_student_cannot_manage_quizzes(self):
        self.client.credentials(HTTP_AUTHORIZATION=f'Token {self.token.key}')
        response = self.client.get('/api/quizzes/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_computes_total_points(self):
        response = self.client.post('/api/quizzes/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        quiz = Quiz.objects.get(pk=response.data['id'])
        self.assertEqual(quiz.total_points, Decimal('10'))
        self.assertEqual(quiz.created_by, self.instructor)
        options = quiz.questions.get(order=1).options
        self.assertTrue(all(option['id'] for option in options))

    def test_create_rejects_mismatched_total(self):
        response = self.client.post('/api/quizzes/', self.payload(total_points='12'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('total_points', response.data['errors'])

    def test_question_requires_correct_answer(self):
        data = self.payload()
        del data['questions'][1]['correct_answer']
        response = self.client.post('/api/quizzes/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_module_must_belong_to_course(self):
        other = Course.objects.create(title='Other', slug='other')
        response = self.client.post('/api/quizzes/', self.payload(course=other.id), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_publish_toggle(self):
        response = self.client.post(f'/api/quizzes/{self.quiz.id}/publish/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_published'])
        self.quiz.refresh_from_db()
        self.assertFalse(self.quiz.is_published)

    def test_quiz_stats(self):
        self.quiz.max_attempts = 3
        self.quiz.save()
        for score in (40, 85, 60):
            self.add_attempt(score)
        response = self.client.get(f'/api/quizzes/{self.quiz.id}/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['submission_count'], 3)
        self.assertEqual(response.data['average_score'], 61.67)
        self.assertEqual(response.data['median_score'], 60.0)
        self.assertEqual(response.data['pass_count'], 2)
        self.assertEqual(response.data['fail_count'], 1)

    def test_overview_stats(self):
        self.add_attempt(85)
        response = self.client.get('/api/quizzes/stats/', {'course': self.course.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_quizzes'], 1)
        self.assertEqual(response.data['total_submissions'], 1)
        self.assertEqual(response.data['summary']['total_participants'], 1)
        self.assertEqual(response.data['summary']['easiest_quiz']['quiz_id'], self.quiz.id)

    def test_stats_rejects_bad_date(self):
        response = self.client.get(f'/api/quizzes/{self.quiz.id}/stats/', {'start_date': 'yesterday'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_stats_rejects_impossible_date(self):
        response = self.client.get(
            f'/api/quizzes/{self.quiz.id}/stats/', {'start_date': '2026-13-45T00:00:00'}
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('start_date', response.data['errors'])

    def test_overview_rejects_non_numeric_course(self):
        response = self.client.get('/api/quizzes/stats/', {'course': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'validation_failed')
        self.assertIn('course', response.data['errors'])

    def test_update_keeps_question_ids(self):
        """Attempts recorded before an edit still match the edited questions."""
        self.add_attempt(33.33)
        data = {
            'questions': [
                {'id': self.q1.pk, 'title': 'Pick A (revised)', 'content': 'Which is A?',
                 'question_type': 'multiple-choice', 'points': '10', 'order': 1,
                 'options': [{'id': 'A', 'text': 'A', 'is_correct': True}, {'id': 'B', 'text': 'B'}],
                 'correct_answer': 'A'},
                {'title': 'New', 'content': 'New?', 'question_type': 'short-answer',
                 'points': '5', 'order': 3, 'correct_answer': 'x'},
            ],
        }
        response = self.client.patch(f'/api/quizzes/{self.quiz.id}/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.quiz.refresh_from_db()
        questions = list(self.quiz.questions.all())
        self.assertEqual(questions[0].pk, self.q1.pk)
        self.assertEqual(questions[0].title, 'Pick A (revised)')
        self.assertEqual(len(questions), 2)
        self.assertFalse(Question.objects.filter(pk=self.q2.pk).exists())
        self.assertEqual(self.quiz.total_points, Decimal('15'))

        attempt = QuizAttempt.objects.get(quiz=self.quiz)
        review = QuizSanitizer().for_review(self.quiz, attempt, attempt_count=1)
        self.assertEqual(review['questions'][0]['title'], 'Pick A (revised)')

    def test_update_rejects_foreign_question_id(self):
        other = self.make_quiz(title='Other quiz')
        foreign = Question.objects.create(
            quiz=other, title='Foreign', content='?', question_type=SHORT,
            points=Decimal('1'), correct_answer='x'
        )
        data = {'questions': [{'id': foreign.pk, 'title': 'Hijack', 'content': '?',
                               'question_type': 'short-answer', 'points': '1', 'correct_answer': 'x'}]}
        response = self.client.patch(f'/api/quizzes/{self.quiz.id}/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Question.objects.get(pk=foreign.pk).quiz, other)
