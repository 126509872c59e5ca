"""
Promotion management and discount lookups.

Managers create and edit chain-wide promotions (no ``branchId``) and
branch promotions.  Any signed-in account can ask for the discount it
would get on a service type, or have a basket of services priced.
"""
from __future__ import annotations

from django.db import transaction
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import DomainError, NotFoundError
from core.models import Branch, Promotion, User
from core.permissions import IsManagerRole, IsManagerOrReadOnly, MANAGER_ROLES
from core.serializers.clinic import id_filters
from core.serializers.commerce import PromotionSerializer, QuoteSerializer
from core.services.audit import log_action
from core.services.promotions import (
    SERVICE_TYPES, best_discount_for, calculate_invoice_totals, is_promotion_active,
    serialize_promotion, validate_promotion,
)


def _branch_or_none(branch_id):
    if not branch_id:
        return None
    branch = Branch.objects.filter(id=branch_id).first()
    if branch is None:
        raise NotFoundError('Branch not found.')
    return branch


def _validated_fields(request) -> tuple[dict, object]:
    s = PromotionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    fields = s.to_model_fields()
    errors = validate_promotion(fields)
    if errors:
        raise DomainError(errors)
    return fields, _branch_or_none(s.validated_data.get('branchId'))


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsManagerOrReadOnly])
def promotions(request):
    """Managers see every promotion; other accounts only the running ones."""
    if request.method == 'POST':
        fields, branch = _validated_fields(request)
        with transaction.atomic():
            promo = Promotion.objects.create(branch=branch, **fields)
            log_action(user=request.user, action='promotion_create', object_type='promotion',
                       object_id=promo.id, detail={'branch': promo.branch_id, 'rate': promo.discount_rate})
        return Response({'ok': True, 'data': serialize_promotion(promo)}, status=status.HTTP_201_CREATED)

    qs = Promotion.objects.order_by('-start_date', 'id')
    branch_id = id_filters(request).get('branchId')
    if branch_id:
        qs = qs.filter(branch_id=branch_id)
    elif request.query_params.get('scope') == 'global':
        qs = qs.filter(branch__isnull=True)
    data = list(qs)
    if request.user.role not in MANAGER_ROLES:
        data = [p for p in data if is_promotion_active(p)]
    return Response({'ok': True, 'data': [serialize_promotion(p) for p in data]})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsManagerRole])
def promotion_detail(request, promotion_id: int):
    promo = Promotion.objects.filter(id=promotion_id).first()
    if promo is None:
        raise NotFoundError('Promotion not found.')
    if request.method == 'GET':
        return Response({'ok': True, 'data': serialize_promotion(promo)})
    if request.method == 'DELETE':
        log_action(user=request.user, action='promotion_delete', object_type='promotion', object_id=promo.id)
        promo.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
    fields, branch = _validated_fields(request)
    for k, v in fields.items():
        setattr(promo, k, v)
    promo.branch = branch
    promo.save()
    log_action(user=request.user, action='promotion_update', object_type='promotion', object_id=promo.id)
    return Response({'ok': True, 'data': serialize_promotion(promo)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def promotion_discount(request):
    """Best single discount rate for ``service_type`` at the caller's tier."""
    service_type = request.query_params.get('service_type') or request.query_params.get('serviceType')
    if service_type not in SERVICE_TYPES:
        raise DomainError(f'service_type must be one of: {", ".join(SERVICE_TYPES)}')
    branch = _branch_or_none(id_filters(request).get('branchId'))
    level = request.user.membership_level if request.user.role == User.ROLE_CUSTOMER else User.LEVEL_BASIC
    rate = best_discount_for(level, service_type, branch)
    return Response({'ok': True, 'serviceType': service_type, 'membershipLevel': level, 'discountRate': rate})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def promotion_quote(request):
    """Price a basket of services with every applicable promotion stacked."""
    s = QuoteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    branch = _branch_or_none(s.validated_data.get('branch_id'))
    level = request.user.membership_level if request.user.role == User.ROLE_CUSTOMER else User.LEVEL_BASIC
    totals = calculate_invoice_totals(s.validated_data['services'], level, branch)
    return Response({'ok': True, 'membershipLevel': level, **totals})
