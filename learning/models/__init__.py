from .course import Course, Module, Lesson
from .enrollment import CourseEnrollment
from .quiz import Quiz, Question
from .attempt import QuizAttempt
from .audit import AuditLog
from .user_profile import UserProfile

__all__ = [
    'Course', 'Module', 'Lesson', 'CourseEnrollment',
    'Quiz', 'Question', 'QuizAttempt',
    'AuditLog', 'UserProfile'
]
