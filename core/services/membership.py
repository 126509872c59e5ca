"""
Membership tier bookkeeping.

A customer's tier is derived from what they spent in the current
calendar year.  Reaching an upgrade threshold promotes the customer;
an existing tier is kept as long as spending stays above the lower
maintain threshold, otherwise the customer drops one tier.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Sum
from django.utils import timezone

from core.models import Invoice, User

logger = logging.getLogger(__name__)

BASIC = User.LEVEL_BASIC
LOYAL = User.LEVEL_LOYAL
VIP = User.LEVEL_VIP

LEVEL_RANK = {BASIC: 1, LOYAL: 2, VIP: 3}


def thresholds() -> dict[str, int]:
    return {
        'vip_upgrade': settings.PETCARE_VIP_UPGRADE,
        'vip_maintain': settings.PETCARE_VIP_MAINTAIN,
        'loyal_upgrade': settings.PETCARE_LOYAL_UPGRADE,
        'loyal_maintain': settings.PETCARE_LOYAL_MAINTAIN,
    }


def calculate_membership_level(spending: int) -> str:
    """Tier for a fresh customer, looking at the upgrade thresholds only."""
    t = thresholds()
    if spending >= t['vip_upgrade']:
        return VIP
    if spending >= t['loyal_upgrade']:
        return LOYAL
    return BASIC


def determine_membership_level(current: Optional[str], yearly: int) -> str:
    t = thresholds()
    if yearly >= t['vip_upgrade']:
        return VIP
    if yearly >= t['loyal_upgrade']:
        return LOYAL
    if current == VIP:
        return VIP if yearly >= t['vip_maintain'] else LOYAL
    if current == LOYAL:
        return LOYAL if yearly >= t['loyal_maintain'] else BASIC
    return BASIC


def yearly_spending(customer: User, year: Optional[int] = None) -> int:
    year = year or timezone.localdate().year
    total = (
        Invoice.objects.filter(customer=customer, created_at__year=year)
        .aggregate(total=Sum('final_amount'))['total']
    )
    return int(total or 0)


def update_customer_membership(customer: User) -> dict:
    """Recompute and persist one customer's tier from this year's invoices."""
    spending = yearly_spending(customer)
    old_level = customer.membership_level
    new_level = determine_membership_level(old_level, spending)
    customer.yearly_spending = spending
    customer.membership_level = new_level
    customer.save(update_fields=['yearly_spending', 'membership_level'])
    upgraded = LEVEL_RANK.get(new_level, 1) > LEVEL_RANK.get(old_level, 1)
    downgraded = LEVEL_RANK.get(new_level, 1) < LEVEL_RANK.get(old_level, 1)
    if upgraded or downgraded:
        logger.info('membership of customer %s changed %s -> %s (spent %s)',
                    customer.pk, old_level, new_level, spending)
    return {
        'customerId': customer.pk,
        'oldLevel': old_level,
        'newLevel': new_level,
        'yearlySpending': spending,
        'upgraded': upgraded,
        'downgraded': downgraded,
    }


def recalculate_all_memberships() -> dict[str, int]:
    """Batch recomputation over every customer; one transaction per customer."""
    counters = {'updated': 0, 'upgraded': 0, 'downgraded': 0, 'errors': 0}
    for customer in User.objects.filter(role=User.ROLE_CUSTOMER).order_by('id').iterator():
        try:
            with transaction.atomic():
                locked = User.objects.select_for_update().get(pk=customer.pk)
                result = update_customer_membership(locked)
        except Exception:
            logger.exception('membership recalculation failed for customer %s', customer.pk)
            counters['errors'] += 1
            continue
        counters['updated'] += 1
        if result['upgraded']:
            counters['upgraded'] += 1
        if result['downgraded']:
            counters['downgraded'] += 1
    return counters


def get_next_level_requirement(level: str, spending: int) -> dict:
    t = thresholds()
    if level == VIP:
        return {'nextLevel': None, 'requiredSpending': 0, 'remaining': 0}
    if level == LOYAL:
        required = t['vip_upgrade']
        nxt = VIP
    else:
        required = t['loyal_upgrade']
        nxt = LOYAL
    return {'nextLevel': nxt, 'requiredSpending': required, 'remaining': max(0, required - spending)}


def is_eligible_for_promotion(level: str, required: str) -> bool:
    if required == 'All':
        return True
    if required == 'Loyal+':
        return level in (LOYAL, VIP)
    if required in ('VIP+', 'VIP'):
        return level == VIP
    return False


def get_membership_stats() -> dict[str, int]:
    rows = (
        User.objects.filter(role=User.ROLE_CUSTOMER)
        .values('membership_level')
        .annotate(n=Count('id'))
    )
    counts = {r['membership_level']: r['n'] for r in rows}
    stats = {
        'basic': counts.get(BASIC, 0),
        'loyal': counts.get(LOYAL, 0),
        'vip': counts.get(VIP, 0),
    }
    stats['total'] = sum(stats.values())
    return stats


def loyalty_points(total_spent: int) -> int:
    return int(total_spent) // settings.PETCARE_LOYALTY_POINT_VALUE
