# exceptions.py
import logging

from django.core.exceptions import ObjectDoesNotExist
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


# ==================== DOMAIN ERRORS ====================
class RegistrationError(Exception):
    """Base class for registration workflow failures."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message, school_code=None):
        super().__init__(message)
        self.message = message
        self.school_code = school_code


class RegistrationIncomplete(RegistrationError):
    """Promotion attempted without a draft school or an accepted disclaimer."""


class RegistrationConflict(RegistrationError):
    """The school code has already been finalized."""
    status_code = status.HTTP_409_CONFLICT


class SchoolNotRegistered(RegistrationError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, school_code):
        super().__init__(
            f"School code '{school_code}' is not registered. Please register the school first.",
            school_code=school_code,
        )


# ==================== ERROR SHAPING ====================
def flatten_errors(detail, path=''):
    """Turn DRF's nested error detail into a flat list of {path, message}."""
    errors = []
    if isinstance(detail, dict):
        for key, value in detail.items():
            key_path = path if key == 'non_field_errors' else (f"{path}.{key}" if path else str(key))
            errors.extend(flatten_errors(value, key_path))
    elif isinstance(detail, list):
        if all(not isinstance(item, (dict, list)) for item in detail):
            errors.extend({'path': path, 'message': str(item)} for item in detail)
        else:
            for index, item in enumerate(detail):
                errors.extend(flatten_errors(item, f"{path}.{index}" if path else str(index)))
    else:
        errors.append({'path': path, 'message': str(detail)})
    return errors


def validation_error_response(detail):
    return Response({
        'success': False,
        'error': 'Validation failed',
        'errors': flatten_errors(detail),
    }, status=status.HTTP_400_BAD_REQUEST)


def api_exception_handler(exc, context):
    """REST framework exception handler wrapping responses in the API envelope."""
    if isinstance(exc, ValidationError):
        return validation_error_response(exc.detail)

    if isinstance(exc, ObjectDoesNotExist):
        exc = Http404(str(exc))

    if isinstance(exc, RegistrationError):
        return Response({
            'success': False,
            'error': exc.message,
        }, status=exc.status_code)

    response = exception_handler(exc, context)
    if response is None:
        view = context.get('view')
        logger.exception(f"Unhandled error in {view.__class__.__name__ if view else 'view'}: {str(exc)}")
        return Response({
            'success': False,
            'error': 'Internal server error',
        }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    detail = response.data.get('detail') if isinstance(response.data, dict) else None
    response.data = {
        'success': False,
        'error': str(detail) if detail is not None else str(getattr(exc, 'detail', exc)),
    }
    return response
