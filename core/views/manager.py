"""
Branch manager statistics under ``/api/manager``.

Aggregates are cached for ``PETCARE_STATS_CACHE_SECONDS``; the
``refresh_caches`` management command warms the same keys.
"""
from __future__ import annotations

from django.conf import settings
from django.core.cache import cache
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import DomainError, NotFoundError
from core.models import Branch
from core.permissions import IsManagerRole
from core.services import reports
from core.services.audit import log_action
from core.services.membership import get_membership_stats, recalculate_all_memberships


def revenue_payload(kind: str) -> dict:
    data = reports.revenue_statistics(kind)
    return {
        'ok': True,
        'data': data,
        'metadata': {
            'type': kind,
            'total_records': len(data),
            'total': sum(r['total_revenue'] for r in data),
        },
    }


def appointments_payload(branch=None) -> dict:
    data = reports.appointment_statistics(branch)
    return {
        'ok': True,
        'data': data,
        'metadata': {
            'type': 'appointments',
            'branch_id': branch.id if branch else 'all',
            'total_records': len(data),
            'total': sum(r['total_appointments'] for r in data),
        },
    }


def products_payload(branch=None) -> dict:
    data = reports.product_revenue_statistics(branch)
    return {
        'ok': True,
        'data': data,
        'metadata': {
            'type': 'products',
            'branch_id': branch.id if branch else 'all',
            'total_records': len(data),
            'total': sum(r['total_revenue'] for r in data),
        },
    }


def ratings_payload() -> dict:
    data = reports.rating_statistics()
    return {
        'ok': True,
        'data': data,
        'metadata': {'type': 'ratings', 'total_records': len(data),
                     'total': sum(r['rated_services'] for r in data)},
    }


def _cached(ck: str, build):
    cached = cache.get(ck)
    if cached:
        return Response(cached)
    payload = build()
    cache.set(ck, payload, settings.PETCARE_STATS_CACHE_SECONDS)
    return Response(payload)


def _branch_or_404(branch_id):
    branch = Branch.objects.filter(id=branch_id).first()
    if branch is None:
        raise NotFoundError('Branch not found')
    return branch


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsManagerRole])
def revenue_statistics(request, kind: str):
    if kind not in reports.STATS_TYPES:
        raise DomainError(f'Invalid type parameter. Allowed values are: {", ".join(reports.STATS_TYPES)}')
    return _cached(f'stats:revenue:{kind}', lambda: revenue_payload(kind))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsManagerRole])
def appointment_statistics(request, branch_id: int | None = None):
    branch = _branch_or_404(branch_id) if branch_id is not None else None
    return _cached(f'stats:appointments:{branch_id or "all"}', lambda: appointments_payload(branch))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsManagerRole])
def product_statistics(request, branch_id: int | None = None):
    branch = _branch_or_404(branch_id) if branch_id is not None else None
    return _cached(f'stats:products:{branch_id or "all"}', lambda: products_payload(branch))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsManagerRole])
def rating_statistics(request):
    return _cached('stats:ratings', ratings_payload)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsManagerRole])
def membership_statistics(request):
    return Response({'ok': True, 'data': get_membership_stats()})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsManagerRole])
def membership_recalculate(request):
    counters = recalculate_all_memberships()
    log_action(user=request.user, action='membership_recalculate', object_type='user', detail=counters)
    return Response({'ok': True, 'data': counters})
