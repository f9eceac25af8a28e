# audit.py
"""
Audit trail for state-changing actions.

Entries go to the ``pbl_app.audit`` logger and to the ``AuditLog`` table.
Writing the table row is best effort: any failure there is logged and
swallowed so the action being audited still succeeds.
"""
import json
import logging

from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction

from .models import AuditAction, AuditLog

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger('pbl_app.audit')

DEFAULT_LOG_LIMIT = 100


def get_client_ip(request):
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def model_snapshot(instance):
    """Column values of a model instance, keyed by attribute name."""
    if instance is None:
        return None
    return {
        field.attname: getattr(instance, field.attname)
        for field in instance._meta.concrete_fields
    }


def _request_user(request):
    user = getattr(request, 'user', None)
    if user is not None and user.is_authenticated:
        return user
    return None


def _session_id(request):
    token = getattr(request, 'auth', None)
    payload = getattr(token, 'payload', None)
    if payload:
        return payload.get('jti')
    return None


class AuditService:

    @staticmethod
    def log_action(action, request=None, user=None, username=None, resource=None,
                   resource_id=None, old_data=None, new_data=None, details=None,
                   success=True, error_message=None):
        if request is not None and user is None:
            user = _request_user(request)
        if user is not None and not username:
            username = user.get_username()

        entry = {
            'action': action,
            'user': user,
            'username': username,
            'resource': resource,
            'resource_id': str(resource_id) if resource_id is not None else None,
            'old_data': old_data,
            'new_data': new_data,
            'details': details,
            'success': success,
            'error_message': error_message,
        }
        if request is not None:
            entry.update({
                'ip_address': get_client_ip(request),
                'user_agent': request.META.get('HTTP_USER_AGENT', ''),
                'session_id': _session_id(request),
            })

        audit_logger.info(json.dumps({
            key: value for key, value in entry.items() if key != 'user'
        }, cls=DjangoJSONEncoder))

        try:
            # Savepoint keeps a failed insert from poisoning the caller's transaction
            with transaction.atomic():
                return AuditLog.objects.create(**entry)
        except Exception as e:
            logger.exception(f"Failed to persist audit log for {action}: {str(e)}")
            return None

    @classmethod
    def log_student_action(cls, action, student, request=None, old_data=None):
        return cls.log_action(
            action,
            request=request,
            resource='Student',
            resource_id=student.student_id,
            old_data=old_data,
            new_data=model_snapshot(student),
            details=f"Student {action.lower()} operation",
        )

    @classmethod
    def log_school_action(cls, action, school, request=None, old_data=None, resource='School'):
        return cls.log_action(
            action,
            request=request,
            resource=resource,
            resource_id=school.school_code if hasattr(school, 'school_code') else school.school_id,
            old_data=old_data,
            new_data=model_snapshot(school),
            details=f"{resource} {action.lower()} operation",
        )

    @classmethod
    def log_auth_action(cls, action, username, success, request=None, user=None, error_message=None):
        return cls.log_action(
            action,
            request=request,
            user=user,
            username=username,
            success=success,
            error_message=error_message,
            details=f"Authentication attempt for user: {username}",
        )

    @classmethod
    def log_error(cls, error, context, request=None):
        return cls.log_action(
            AuditAction.SYSTEM_ERROR,
            request=request,
            success=False,
            error_message=str(error),
            details=f"System error in {context}: {str(error)}",
            new_data={'context': context, 'error_type': error.__class__.__name__},
        )

    @classmethod
    def log_bulk_operation(cls, action, count, resource, request=None, new_data=None):
        return cls.log_action(
            action,
            request=request,
            resource=resource,
            new_data=new_data,
            details=f"Bulk {action.lower()} operation: {count} {resource}s affected",
        )

    @staticmethod
    def get_audit_logs(action=None, user_id=None, resource=None, start_date=None,
                       end_date=None, limit=DEFAULT_LOG_LIMIT):
        logs = AuditLog.objects.select_related('user')
        if action:
            logs = logs.filter(action=action)
        if user_id:
            logs = logs.filter(user_id=user_id)
        if resource:
            logs = logs.filter(resource=resource)
        if start_date:
            logs = logs.filter(created_at__gte=start_date)
        if end_date:
            logs = logs.filter(created_at__lte=end_date)
        return logs.order_by('-created_at', '-id')[:limit]
