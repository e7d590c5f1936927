from rest_framework.throttling import UserRateThrottle


class QuizSubmissionRateThrottle(UserRateThrottle):
    """Strict rate limit for quiz submissions to prevent answer probing."""
    scope = 'quiz_submission'
