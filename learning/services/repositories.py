"""
Data access used by the quiz engine: enrollments, quizzes and attempts.
"""
import logging
from decimal import Decimal

from django.db import IntegrityError, transaction

from learning.exceptions import AttemptsExhausted
from learning.models import CourseEnrollment, Quiz, QuizAttempt

logger = logging.getLogger(__name__)


class EnrollmentDirectory:

    def is_enrolled(self, student, course_id) -> bool:
        return CourseEnrollment.objects.filter(
            student=student,
            course_id=course_id,
            status__in=CourseEnrollment.ENROLLED_STATUSES
        ).exists()


class QuizRepository:

    def get_quiz(self, quiz_id):
        """Quiz with its questions and course, or None."""
        try:
            return Quiz.objects.select_related('course', 'module').prefetch_related('questions').get(pk=quiz_id)
        except (Quiz.DoesNotExist, ValueError, TypeError):
            return None


class AttemptRepository:

    def for_student(self, student, quiz_id):
        return QuizAttempt.objects.filter(student=student, quiz_id=quiz_id).order_by('attempt_number', 'submitted_at')

    def count_for(self, student, quiz_id) -> int:
        return QuizAttempt.objects.filter(student=student, quiz_id=quiz_id).count()

    def last_for(self, student, quiz_id):
        return self.for_student(student, quiz_id).last()

    def append(self, student, quiz, summary, time_taken=None, submitted_at=None):
        """
        Record a scored submission as the student's next attempt.

        The enrollment row is locked for the duration of the transaction and
        the attempt number is guarded by a unique constraint, so two
        concurrent submissions can never both take the last free slot.
        """
        with transaction.atomic():
            list(
                CourseEnrollment.objects.select_for_update()
                .filter(student=student, course_id=quiz.course_id)
                .values_list('pk', flat=True)
            )
            attempt_count = self.count_for(student, quiz.pk)
            if attempt_count >= quiz.max_attempts:
                raise AttemptsExhausted()

            fields = {
                'student': student,
                'quiz': quiz,
                'course_id': quiz.course_id,
                'module_id': quiz.module_id,
                'attempt_number': attempt_count + 1,
                'results': [result.to_dict() for result in summary.results],
                'score': Decimal(str(summary.score)),
                'passed': summary.passed,
                'earned_points': Decimal(str(round(summary.earned_points, 2))),
                'total_points': Decimal(str(round(summary.total_points, 2))),
                'pending_review': summary.pending_review,
                'time_taken': time_taken,
            }
            if submitted_at is not None:
                fields['submitted_at'] = submitted_at

            try:
                with transaction.atomic():
                    return QuizAttempt.objects.create(**fields)
            except IntegrityError:
                logger.warning(
                    "Concurrent submission rejected: student=%s quiz=%s attempt=%s",
                    student.pk, quiz.pk, attempt_count + 1
                )
                raise AttemptsExhausted(
                    'Another submission for this attempt was recorded first.'
                )
