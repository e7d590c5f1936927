"""
API Views for the Learning Platform.
Student quiz delivery, submission and results, plus quiz management.
"""
from rest_framework import viewsets, generics, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import (
    extend_schema, extend_schema_view, OpenApiParameter,
    OpenApiExample, OpenApiResponse
)

from learning.exceptions import QuizEngineError
from learning.models import Quiz, QuizAttempt, AuditLog
from learning.permissions import IsInstructorOrAdmin
from learning.services import QuizAttemptService, QuizAnalytics
from learning.throttling import QuizSubmissionRateThrottle
from .filters import QuizAttemptFilter
from .serializers import (
    QuizSerializer, QuizListSerializer, SubmitQuizSerializer, QuizAttemptListSerializer,
    QuizStatsQuerySerializer
)


def _stats_params(request):
    serializer = QuizStatsQuerySerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


# =============================================================================
# STUDENT QUIZZES
# =============================================================================

@extend_schema(tags=['Student Quizzes'])
class StudentQuizView(APIView):
    """Fetch a quiz for taking, or the review of the last attempt."""
    permission_classes = [IsAuthenticated]
    service_class = QuizAttemptService

    @extend_schema(
        summary="Get quiz for attempt",
        description="""
Returns the quiz ready to be taken: correct answers, explanations and option
correctness are removed, and questions/options are shuffled when the quiz
asks for it.

Once all attempts are used (or with `review=true`), returns the last attempt
merged with the questions. Correct answers appear only if the quiz allows it.
""",
        parameters=[
            OpenApiParameter(name='review', type=bool, location='query', description='Return the last attempt for review')
        ],
        responses={
            200: OpenApiResponse(description="Sanitized quiz or attempt review"),
            403: OpenApiResponse(description="Not enrolled, not yet available or expired"),
            404: OpenApiResponse(description="Quiz not found"),
            409: OpenApiResponse(description="Maximum attempts reached and review disabled"),
        }
    )
    def get(self, request, course_id, quiz_id):
        review = request.query_params.get('review', '').lower() in ('1', 'true', 'yes')
        try:
            data = self.service_class().get_quiz_for_attempt(
                request.user, course_id, quiz_id, review=review
            )
        except QuizEngineError as exc:
            _log_rejection(request, quiz_id, exc)
            raise

        AuditLog.log(
            event_type=AuditLog.EventType.QUIZ_REVIEW if data['completed'] else AuditLog.EventType.QUIZ_VIEW,
            description=f"{'Reviewed' if data['completed'] else 'Opened'}: {data['title']}",
            request=request,
            metadata={'quiz_id': quiz_id, 'course_id': course_id}
        )
        return Response(data)


@extend_schema(tags=['Student Quizzes'])
class SubmitQuizView(APIView):
    """Grade a submission and record it as a new attempt."""
    permission_classes = [IsAuthenticated]
    throttle_classes = [QuizSubmissionRateThrottle]
    service_class = QuizAttemptService

    @extend_schema(
        summary="Submit quiz answers",
        description="""
Submit answers keyed by question id. Multiple choice, true/false and short
answer questions are graded immediately; essay and matching questions are
left for manual grading and earn no points here.

Per-question correct answers are included only if the quiz shows them.
""",
        request=SubmitQuizSerializer,
        examples=[
            OpenApiExample(
                'Request Example',
                value={"answers": {"12": "A", "13": "paris"}, "time_taken": 340},
                request_only=True
            ),
            OpenApiExample(
                'Response Example',
                value={
                    "quiz_id": 4,
                    "attempt_number": 1,
                    "score": 100.0,
                    "passed": True,
                    "earned_points": 15.0,
                    "total_points": 15.0,
                    "details": {"total_questions": 2, "correct_answers": 2, "pending_review": 0, "time_taken": 340},
                    "results": [{"question_id": "12", "user_answer": "A", "is_correct": True}]
                },
                response_only=True
            )
        ],
        responses={
            201: OpenApiResponse(description="Attempt recorded"),
            400: OpenApiResponse(description="Malformed answer payload"),
            409: OpenApiResponse(description="Maximum attempts reached"),
        }
    )
    def post(self, request, course_id, quiz_id):
        serializer = SubmitQuizSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            data = self.service_class().submit_attempt(
                request.user, course_id, quiz_id,
                answers=serializer.validated_data['answers'],
                time_taken=serializer.validated_data.get('time_taken'),
            )
        except QuizEngineError as exc:
            _log_rejection(request, quiz_id, exc)
            raise

        AuditLog.log(
            event_type=AuditLog.EventType.QUIZ_SUBMIT,
            description=f"Submitted quiz {quiz_id} (Attempt {data['attempt_number']})",
            request=request,
            metadata={'quiz_id': quiz_id, 'score': data['score'], 'passed': data['passed']}
        )
        return Response(data, status=status.HTTP_201_CREATED)


@extend_schema(tags=['Student Quizzes'])
class QuizResultsView(APIView):
    """Attempt history for one quiz."""
    permission_classes = [IsAuthenticated]
    service_class = QuizAttemptService

    @extend_schema(
        summary="Get my quiz results",
        description="All of the current user's attempts in submission order, with best score and latest attempt.",
        responses={200: dict, 403: dict, 404: dict}
    )
    def get(self, request, course_id, quiz_id):
        return Response(self.service_class().get_results(request.user, course_id, quiz_id))


@extend_schema_view(
    get=extend_schema(summary="List my quiz attempts")
)
@extend_schema(tags=['Student Quizzes'])
class MyQuizAttemptsView(generics.ListAPIView):
    serializer_class = QuizAttemptListSerializer
    permission_classes = [IsAuthenticated]
    filterset_class = QuizAttemptFilter

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return QuizAttempt.objects.none()
        return QuizAttemptService().list_attempts(self.request.user)


def _log_rejection(request, quiz_id, exc):
    AuditLog.log(
        event_type=AuditLog.EventType.QUIZ_REJECTED,
        description=f"Rejected ({exc.get_codes()}): quiz {quiz_id}",
        request=request,
        metadata={'quiz_id': quiz_id, 'code': exc.get_codes()}
    )


# =============================================================================
# QUIZ MANAGEMENT
# =============================================================================

@extend_schema_view(
    list=extend_schema(summary="List quizzes"),
    retrieve=extend_schema(summary="Get quiz with questions and answers"),
    create=extend_schema(
        summary="Create quiz",
        description="""
Create a quiz with its questions. `total_points` is computed from the
questions when omitted and must match their sum when given.
""",
        examples=[
            OpenApiExample(
                'Request Example',
                value={
                    "title": "Capitals",
                    "course": 1,
                    "module": 1,
                    "quiz_type": "graded",
                    "passing_score": 60,
                    "max_attempts": 2,
                    "questions": [
                        {
                            "title": "Pick A", "content": "Which letter is A?",
                            "question_type": "multiple-choice", "points": 10, "order": 1,
                            "options": [{"id": "A", "text": "A", "is_correct": True}, {"id": "B", "text": "B"}],
                            "correct_answer": "A"
                        },
                        {
                            "title": "Capital", "content": "Capital of France?",
                            "question_type": "short-answer", "points": 5, "order": 2,
                            "correct_answer": "Paris"
                        }
                    ]
                },
                request_only=True
            )
        ]
    ),
    update=extend_schema(summary="Update quiz"),
    partial_update=extend_schema(summary="Partially update quiz"),
    destroy=extend_schema(summary="Delete quiz"),
)
@extend_schema(tags=['Quizzes'])
class QuizViewSet(viewsets.ModelViewSet):
    """Quiz management for instructors and admins."""
    permission_classes = [IsAuthenticated, IsInstructorOrAdmin]
    filterset_fields = ['course', 'module', 'quiz_type', 'is_published']
    search_fields = ['title', 'description']
    ordering_fields = ['title', 'created_at', 'due_date']

    def get_queryset(self):
        return Quiz.objects.select_related('course', 'module').prefetch_related('questions').order_by('-created_at')

    def get_serializer_class(self):
        if self.action == 'list':
            return QuizListSerializer
        return QuizSerializer

    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user)

    @extend_schema(summary="Toggle publication", request=None, responses={200: QuizSerializer})
    @action(detail=True, methods=['post'])
    def publish(self, request, pk=None):
        quiz = self.get_object()
        quiz.is_published = not quiz.is_published
        quiz.save(update_fields=['is_published', 'updated_at'])

        AuditLog.log(
            event_type=AuditLog.EventType.QUIZ_PUBLISH,
            description=f"{'Published' if quiz.is_published else 'Unpublished'}: {quiz.title}",
            request=request,
            metadata={'quiz_id': quiz.id}
        )
        return Response(QuizSerializer(quiz).data)

    @extend_schema(
        summary="Quiz statistics",
        tags=['Statistics'],
        parameters=[
            OpenApiParameter(name='start_date', type=str, location='query', description='ISO 8601 lower bound on submitted_at'),
            OpenApiParameter(name='end_date', type=str, location='query', description='ISO 8601 upper bound on submitted_at'),
        ],
        responses={200: dict}
    )
    @action(detail=True, methods=['get'])
    def stats(self, request, pk=None):
        quiz = self.get_object()
        params = _stats_params(request)
        analytics = QuizAnalytics(
            quiz,
            start_date=params.get('start_date'),
            end_date=params.get('end_date'),
        )
        return Response(analytics.get_stats())

    @extend_schema(
        summary="Statistics across quizzes",
        tags=['Statistics'],
        parameters=[
            OpenApiParameter(name='course', type=int, location='query', description='Limit to one course'),
            OpenApiParameter(name='start_date', type=str, location='query'),
            OpenApiParameter(name='end_date', type=str, location='query'),
        ],
        responses={200: dict}
    )
    @action(detail=False, methods=['get'], url_path='stats', url_name='overview')
    def overview(self, request):
        params = _stats_params(request)
        return Response(QuizAnalytics.get_overview(
            course_id=params.get('course'),
            start_date=params.get('start_date'),
            end_date=params.get('end_date'),
        ))
