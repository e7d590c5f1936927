"""
Quiz attempt lifecycle: delivering a quiz, grading a submission and
reporting attempt history.
"""
import logging

from rest_framework.exceptions import PermissionDenied

from learning.exceptions import NotEnrolled, QuizNotFound, SubmissionInvalid
from learning.grading import QuizSnapshot, ScoringEngine
from learning.models import QuizAttempt
from .eligibility import Eligibility, EligibilityGate, raise_for_outcome
from .repositories import EnrollmentDirectory, QuizRepository, AttemptRepository
from .sanitizer import QuizSanitizer, redact_results

logger = logging.getLogger(__name__)


def best_score(scores):
    scores = [float(score) for score in scores]
    return max(scores) if scores else 0.0


class QuizAttemptService:

    def __init__(self, enrollments=None, quizzes=None, attempts=None,
                 sanitizer=None, engine=None, rng=None):
        self.enrollments = enrollments or EnrollmentDirectory()
        self.quizzes = quizzes or QuizRepository()
        self.attempts = attempts or AttemptRepository()
        self.gate = EligibilityGate(self.enrollments)
        self.sanitizer = sanitizer or QuizSanitizer(rng=rng)
        self.engine = engine or ScoringEngine()

    def _load(self, student, course_id, quiz_id, now=None):
        quiz = self.quizzes.get_quiz(quiz_id)
        attempt_count = self.attempts.count_for(student, quiz.pk) if quiz else 0
        outcome = self.gate.check(student, course_id, quiz, attempt_count, now=now)
        return quiz, attempt_count, outcome

    def get_quiz_for_attempt(self, student, course_id, quiz_id, now=None, review=False) -> dict:
        quiz, attempt_count, outcome = self._load(student, course_id, quiz_id, now)

        if outcome is Eligibility.MAX_ATTEMPTS_REACHED and quiz.allow_review and attempt_count:
            return self.sanitizer.for_review(
                quiz, self.attempts.last_for(student, quiz.pk), attempt_count
            )
        raise_for_outcome(outcome)

        if review:
            if not quiz.allow_review:
                raise PermissionDenied('Review is disabled for this quiz.')
            if not attempt_count:
                raise QuizNotFound('No submissions found for this quiz.')
            return self.sanitizer.for_review(
                quiz, self.attempts.last_for(student, quiz.pk), attempt_count
            )

        return self.sanitizer.for_attempt(quiz, attempt_count)

    def submit_attempt(self, student, course_id, quiz_id, answers, time_taken=None, now=None) -> dict:
        quiz, attempt_count, outcome = self._load(student, course_id, quiz_id, now)
        if outcome is not Eligibility.ELIGIBLE:
            logger.info(
                "Submission rejected (%s): student=%s quiz=%s",
                outcome.value, student.pk, quiz_id
            )
        raise_for_outcome(outcome)

        snapshot = QuizSnapshot.from_quiz(quiz)
        answers = self._clean_answers(answers, snapshot)
        summary = self.engine.score(snapshot, answers)
        attempt = self.attempts.append(student, quiz, summary, time_taken=time_taken)

        logger.info(
            "Quiz submitted: student=%s quiz=%s attempt=%s score=%s passed=%s",
            student.pk, quiz.pk, attempt.attempt_number, summary.score, summary.passed
        )
        return self.attempt_summary(quiz, attempt, summary.correct_answers, len(snapshot.questions))

    def get_results(self, student, course_id, quiz_id) -> dict:
        if not self.enrollments.is_enrolled(student, course_id):
            raise NotEnrolled()
        quiz = self.quizzes.get_quiz(quiz_id)
        if quiz is None or str(quiz.course_id) != str(course_id):
            raise QuizNotFound()

        attempts = list(self.attempts.for_student(student, quiz.pk))
        if not attempts:
            raise QuizNotFound('No submissions found for this quiz.')

        submissions = [{
            'attempt_number': number,
            'score': float(attempt.score),
            'passed': attempt.passed,
            'submitted_at': attempt.submitted_at,
            'time_taken': attempt.time_taken,
            'details': {
                'earned_points': float(attempt.earned_points),
                'total_points': float(attempt.total_points),
            },
        } for number, attempt in enumerate(attempts, start=1)]

        latest = attempts[-1]
        return {
            'quiz_id': quiz.pk,
            'submissions': submissions,
            'best_score': best_score(a.score for a in attempts),
            'latest_attempt': self.attempt_summary(quiz, latest),
        }

    def list_attempts(self, student, course_id=None):
        queryset = QuizAttempt.objects.filter(student=student).select_related('quiz', 'course')
        if course_id:
            queryset = queryset.filter(course_id=course_id)
        return queryset.order_by('-submitted_at')

    @staticmethod
    def attempt_summary(quiz, attempt, correct_answers=None, total_questions=None) -> dict:
        results = attempt.results
        if correct_answers is None:
            correct_answers = sum(1 for r in results if r.get('is_correct'))
        return {
            'quiz_id': quiz.pk,
            'attempt_number': attempt.attempt_number,
            'score': float(attempt.score),
            'passed': attempt.passed,
            'earned_points': float(attempt.earned_points),
            'total_points': float(attempt.total_points),
            'submitted_at': attempt.submitted_at,
            'details': {
                'total_questions': total_questions if total_questions is not None else len(results),
                'correct_answers': correct_answers,
                'pending_review': attempt.pending_review,
                'time_taken': attempt.time_taken,
            },
            'results': redact_results(results, quiz.show_correct_answers),
        }

    @staticmethod
    def _clean_answers(answers, snapshot):
        if answers is None:
            return {}
        if not isinstance(answers, dict):
            raise SubmissionInvalid('Answers must be an object keyed by question id.')

        cleaned = {str(key): value for key, value in answers.items()}
        unknown = sorted(set(cleaned) - snapshot.question_ids)
        if unknown:
            raise SubmissionInvalid(f"Question {unknown[0]} does not belong to this quiz.")
        return cleaned
