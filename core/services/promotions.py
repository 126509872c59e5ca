"""
Promotion stacking engine.

Every active promotion that targets the service type and admits the
customer's membership tier applies.  Rates add up, capped at
``PETCARE_MAX_DISCOUNT_RATE``; amounts are floored to whole VND.
"""
from __future__ import annotations

import datetime as dt
from typing import Iterable, Optional

from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from core.models import Promotion, SERVICE_TYPE_CHOICES
from core.services.membership import is_eligible_for_promotion

MIN_RATE = 5
MAX_RATE = 15
SERVICE_TYPES = [c[0] for c in SERVICE_TYPE_CHOICES]
AUDIENCES = [c[0] for c in Promotion.AUDIENCE_CHOICES]


def _end_of_day(day: dt.date) -> dt.datetime:
    return timezone.make_aware(dt.datetime.combine(day, dt.time(23, 59, 59, 999999)))


def _start_of_day(day: dt.date) -> dt.datetime:
    return timezone.make_aware(dt.datetime.combine(day, dt.time.min))


def promotion_status(promo: Promotion, now: Optional[dt.datetime] = None) -> str:
    now = now or timezone.now()
    if now < _start_of_day(promo.start_date):
        return 'upcoming'
    if now > _end_of_day(promo.end_date):
        return 'expired'
    return 'active'


def is_promotion_active(promo: Promotion, now: Optional[dt.datetime] = None) -> bool:
    return promo.is_active and promotion_status(promo, now) == 'active'


def applicable_promotions(service_type: str, level: str, branch=None,
                          now: Optional[dt.datetime] = None) -> list[Promotion]:
    now = now or timezone.now()
    today = timezone.localtime(now).date()
    scope = Q(branch__isnull=True)
    if branch is not None:
        scope |= Q(branch=branch)
    qs = Promotion.objects.filter(scope, is_active=True, start_date__lte=today, end_date__gte=today).order_by('id')
    return [
        p for p in qs
        if service_type in (p.applicable_service_types or [])
        and is_eligible_for_promotion(level, p.target_audience)
        and is_promotion_active(p, now)
    ]


def calculate_service_discount(service_type: str, base_price: int, level: str, branch=None, *,
                               vaccine_cost: int = 0, package_cost: int = 0,
                               promotions: Optional[Iterable[Promotion]] = None,
                               now: Optional[dt.datetime] = None) -> dict:
    base = int(base_price) + int(vaccine_cost or 0) + int(package_cost or 0)
    if base <= 0:
        return {'serviceType': service_type, 'basePrice': base, 'discountRate': 0,
                'discountAmount': 0, 'finalPrice': base, 'appliedPromotions': []}
    if promotions is None:
        promotions = applicable_promotions(service_type, level, branch, now)
    applied = list(promotions)
    rate = min(sum(p.discount_rate for p in applied), settings.PETCARE_MAX_DISCOUNT_RATE)
    discount = base * rate // 100
    return {
        'serviceType': service_type,
        'basePrice': base,
        'discountRate': rate,
        'discountAmount': discount,
        'finalPrice': base - discount,
        'appliedPromotions': [
            {
                'id': p.id,
                'description': p.description,
                'discountRate': p.discount_rate,
                'amount': base * p.discount_rate // 100,
                'scope': 'branch' if p.branch_id else 'global',
            }
            for p in applied
        ],
    }


def calculate_invoice_totals(lines: list[dict], level: str, branch=None,
                             now: Optional[dt.datetime] = None) -> dict:
    """Price a list of ``{'serviceType', 'basePrice', ...}`` lines."""
    breakdown = []
    for line in lines:
        breakdown.append(calculate_service_discount(
            line['serviceType'], line.get('basePrice', 0), level, branch,
            vaccine_cost=line.get('vaccineCost', 0), package_cost=line.get('packageCost', 0),
            now=now,
        ))
    subtotal = sum(b['basePrice'] for b in breakdown)
    discount = sum(b['discountAmount'] for b in breakdown)
    return {
        'subtotal': subtotal,
        'totalDiscount': discount,
        'totalDiscountRate': (discount / subtotal * 100) if subtotal else 0,
        'finalAmount': subtotal - discount,
        'services': breakdown,
    }


def validate_promotion(data: dict) -> list[str]:
    """Business rule checks for a promotion payload; returns error messages."""
    errors: list[str] = []
    start, end = data.get('start_date'), data.get('end_date')
    if not start or not end:
        errors.append('Start date and end date are required.')
    elif start >= end:
        errors.append('Start date must be before end date.')
    description = (data.get('description') or '').strip()
    if not description:
        errors.append('Description is required.')
    elif len(description) > 500:
        errors.append('Description must be at most 500 characters.')
    rate = data.get('discount_rate')
    if rate is None or not (MIN_RATE <= rate <= MAX_RATE):
        errors.append(f'Discount rate must be between {MIN_RATE}% and {MAX_RATE}%.')
    types = data.get('applicable_service_types') or []
    if not types:
        errors.append('At least one service type is required.')
    elif any(t not in SERVICE_TYPES for t in types):
        errors.append('Unknown service type.')
    if not data.get('target_audience'):
        errors.append('Target audience is required.')
    elif data['target_audience'] not in AUDIENCES:
        errors.append('Unknown target audience.')
    return errors


def best_discount_for(level: str, service_type: str, branch=None) -> int:
    rates = [p.discount_rate for p in applicable_promotions(service_type, level, branch)]
    return max(rates) if rates else 0


def serialize_promotion(p: Promotion, now: Optional[dt.datetime] = None) -> dict:
    return {
        'id': p.id,
        'description': p.description,
        'targetAudience': p.target_audience,
        'applicableServiceTypes': p.applicable_service_types,
        'discountRate': p.discount_rate,
        'startDate': p.start_date.isoformat(),
        'endDate': p.end_date.isoformat(),
        'isActive': p.is_active,
        'branchId': p.branch_id,
        'status': promotion_status(p, now),
        'createdAt': p.created_at.isoformat() if p.created_at else None,
    }
