"""
Availability & eligibility checks for quiz attempts.

Checks run in a fixed order and the first failing one decides the outcome.
Times are compared in the configured reference timezone so deadlines do not
depend on where the server runs.
"""
from enum import Enum
from zoneinfo import ZoneInfo

from django.conf import settings
from django.utils import timezone

from learning.exceptions import (
    NotEnrolled, QuizNotFound, NotYetAvailable, QuizExpired, AttemptsExhausted
)
from .repositories import EnrollmentDirectory


class Eligibility(str, Enum):
    ELIGIBLE = 'eligible'
    NOT_ENROLLED = 'not-enrolled'
    NOT_PUBLISHED = 'not-published'
    NOT_YET_AVAILABLE = 'not-yet-available'
    EXPIRED = 'expired'
    MAX_ATTEMPTS_REACHED = 'max-attempts-reached'


OUTCOME_ERRORS = {
    Eligibility.NOT_ENROLLED: NotEnrolled,
    Eligibility.NOT_PUBLISHED: QuizNotFound,
    Eligibility.NOT_YET_AVAILABLE: NotYetAvailable,
    Eligibility.EXPIRED: QuizExpired,
    Eligibility.MAX_ATTEMPTS_REACHED: AttemptsExhausted,
}


def reference_timezone():
    return ZoneInfo(settings.QUIZ_ENGINE.get('REFERENCE_TIMEZONE', 'UTC'))


def reference_now():
    return timezone.now().astimezone(reference_timezone())


def raise_for_outcome(outcome: Eligibility):
    if outcome is not Eligibility.ELIGIBLE:
        raise OUTCOME_ERRORS[outcome]()


class EligibilityGate:

    def __init__(self, enrollments=None):
        self.enrollments = enrollments or EnrollmentDirectory()

    def check(self, student, course_id, quiz, attempt_count: int, now=None) -> Eligibility:
        if not self.enrollments.is_enrolled(student, course_id):
            return Eligibility.NOT_ENROLLED

        if quiz is None or not quiz.is_published or str(quiz.course_id) != str(course_id):
            return Eligibility.NOT_PUBLISHED

        now = self._localize(now or reference_now())
        if quiz.available_from and now < self._localize(quiz.available_from):
            return Eligibility.NOT_YET_AVAILABLE
        if quiz.available_until and now > self._localize(quiz.available_until):
            return Eligibility.EXPIRED

        if attempt_count >= quiz.max_attempts:
            return Eligibility.MAX_ATTEMPTS_REACHED

        return Eligibility.ELIGIBLE

    @staticmethod
    def _localize(moment):
        if timezone.is_naive(moment):
            moment = timezone.make_aware(moment, reference_timezone())
        return moment.astimezone(reference_timezone())
