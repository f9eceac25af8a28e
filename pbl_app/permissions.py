# permissions.py
from rest_framework import permissions


def school_code_for(user):
    """School code an active school login is bound to, or None."""
    credentials = getattr(user, 'school_credentials', None)
    if credentials is None or not credentials.is_active or not credentials.school.is_active:
        return None
    return credentials.school_id


class IsAdministrator(permissions.BasePermission):
    """
    Programme administrators only
    """
    message = 'You do not have permission to perform this action'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_admin)


class IsAdministratorOrOwnSchool(permissions.BasePermission):
    """
    Administrators see every school; a school login only its own code.
    """
    message = 'You do not have permission to access this school'

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        if user.is_admin:
            return True
        # Tokens issued before a deactivation stay valid until they expire
        own_code = school_code_for(user)
        if own_code is None:
            return False

        school_code = view.kwargs.get('school_code')
        if school_code is None:
            # Routes keyed by something else are checked per object
            return True
        return own_code == school_code

    def has_object_permission(self, request, view, obj):
        user = request.user
        if user.is_admin:
            return True
        owner = getattr(obj, 'school_code', None) or getattr(obj, 'school_id', None)
        return owner is not None and owner == school_code_for(user)
