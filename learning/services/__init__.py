from .eligibility import Eligibility, EligibilityGate, raise_for_outcome, reference_now
from .sanitizer import QuizSanitizer, redact_results
from .repositories import EnrollmentDirectory, QuizRepository, AttemptRepository
from .quiz_attempts import QuizAttemptService, best_score
from .analytics import QuizAnalytics

__all__ = [
    'Eligibility', 'EligibilityGate', 'raise_for_outcome', 'reference_now',
    'QuizSanitizer', 'redact_results',
    'EnrollmentDirectory', 'QuizRepository', 'AttemptRepository',
    'QuizAttemptService', 'best_score', 'QuizAnalytics'
]
