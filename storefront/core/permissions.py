from rest_framework import status
from rest_framework.permissions import BasePermission
from rest_framework.response import Response


class IsAdminRole(BasePermission):
    """Allows access to storefront admins (role=admin) and superusers"""
    message = 'Admin access required'

    def has_permission(self, request, view):
        return is_admin_user(request.user)


def is_admin_user(user):
    return bool(user and user.is_authenticated and user.is_admin)


def admin_required_response(request):
    """Error response for admin-only actions on mixed-access views, None when allowed"""
    if not (request.user and request.user.is_authenticated):
        return Response({'error': 'Authentication required'}, status=status.HTTP_401_UNAUTHORIZED)
    if not request.user.is_admin:
        return Response({'error': 'Admin access required'}, status=status.HTTP_403_FORBIDDEN)
    return None
