"""
Dashboard endpoints.

``public-stats`` feeds the landing page and needs no account.  ``stats``
returns the figures of the caller's own dashboard, shaped by role.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from core.services.reports import dashboard_stats, public_stats


@api_view(['GET'])
@permission_classes([AllowAny])
def dashboard_public_stats(request):
    return Response({'ok': True, 'data': public_stats()})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_role_stats(request):
    return Response({'ok': True, 'role': request.user.role, 'data': dashboard_stats(request.user)})
