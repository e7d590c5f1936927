from rest_framework import permissions


class IsInstructorOrAdmin(permissions.BasePermission):
    message = "Only instructors and admins can perform this action."

    def has_permission(self, request, view):
        return is_privileged(request.user)


def is_privileged(user):
    if not user or not user.is_authenticated:
        return False
    return user.is_staff or (hasattr(user, 'profile') and user.profile.is_staff_role)
