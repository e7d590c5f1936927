from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .api.views import (
    # Student quizzes
    StudentQuizView, SubmitQuizView, QuizResultsView, MyQuizAttemptsView,
    # Quiz management
    QuizViewSet,
)

router = DefaultRouter()
router.register(r'quizzes', QuizViewSet, basename='quiz')

urlpatterns = [
    # ============================================
    # STUDENT QUIZZES
    # ============================================
    path('courses/<int:course_id>/quizzes/<int:quiz_id>/', StudentQuizView.as_view(), name='student-quiz'),
    path('courses/<int:course_id>/quizzes/<int:quiz_id>/submit/', SubmitQuizView.as_view(), name='student-quiz-submit'),
    path('courses/<int:course_id>/quizzes/<int:quiz_id>/results/', QuizResultsView.as_view(), name='student-quiz-results'),
    path('my-quizzes/', MyQuizAttemptsView.as_view(), name='my-quizzes'),

    # ============================================
    # QUIZ MANAGEMENT (ViewSets)
    # ============================================
    path('', include(router.urls)),
]
