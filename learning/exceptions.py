"""
Typed failures of the quiz engine and the API-wide exception handler.

Every failure carries a machine-readable ``code`` and a human ``detail``.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class QuizEngineError(APIException):
    """Base class for user-visible quiz engine failures."""


class NotEnrolled(QuizEngineError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Not enrolled in this course.'
    default_code = 'not_enrolled'


class QuizNotFound(QuizEngineError):
    # Missing, unpublished and wrong-course quizzes all look the same.
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Quiz not found.'
    default_code = 'not_found'


class NotYetAvailable(QuizEngineError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Quiz is not available yet.'
    default_code = 'not_yet_available'


class QuizExpired(QuizEngineError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Quiz is no longer available.'
    default_code = 'expired'


class AttemptsExhausted(QuizEngineError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Maximum attempts reached for this quiz.'
    default_code = 'attempts_exhausted'


class SubmissionInvalid(QuizEngineError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid answer payload.'
    default_code = 'validation_failed'


def api_exception_handler(exc, context):
    """
    Render every API error as ``{"detail", "code"}``.

    Serializer errors keep their field messages under ``errors``. Anything
    DRF does not recognise is logged with its traceback and reported as an
    opaque internal error.
    """
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.exception(
            "Unhandled error in %s", view.__class__.__name__ if view else 'unknown view',
            exc_info=exc
        )
        return Response(
            {'detail': 'Internal server error.', 'code': 'internal_error'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    if isinstance(exc, ValidationError):
        response.data = {
            'detail': 'Validation failed.',
            'code': 'validation_failed',
            'errors': response.data,
        }
    elif isinstance(exc, APIException):
        detail = exc.detail
        response.data = {
            'detail': str(detail) if not isinstance(detail, (dict, list)) else detail,
            'code': exc.get_codes() if isinstance(detail, (dict, list)) else detail.code,
        }
    else:
        # Django's Http404 / PermissionDenied, already converted by DRF.
        response.data['code'] = 'not_found' if response.status_code == 404 else 'permission_denied'
    return response
