from rest_framework import permissions

from .context import AuthContext


class IsStudent(permissions.BasePermission):
    """
    Only students take exams. Staff use the admin endpoints, which bypass
    the result gate.
    """
    message = 'Only students can access this endpoint.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and not AuthContext.from_user(user).is_staff)


class IsStaffMember(permissions.BasePermission):
    message = 'Staff access required.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and AuthContext.from_user(user).is_staff)
