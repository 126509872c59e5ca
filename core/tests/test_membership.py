import pytest
from django.test import override_settings

from core.models import Invoice, User
from core.services.invoicing import create_invoice
from core.services.membership import (
    calculate_membership_level, determine_membership_level, get_membership_stats,
    get_next_level_requirement, is_eligible_for_promotion, loyalty_points, recalculate_all_memberships,
    update_customer_membership,
)

pytestmark = pytest.mark.django_db

THRESHOLDS = dict(
    PETCARE_VIP_UPGRADE=12_000_000,
    PETCARE_VIP_MAINTAIN=8_000_000,
    PETCARE_LOYAL_UPGRADE=5_000_000,
    PETCARE_LOYAL_MAINTAIN=3_000_000,
    PETCARE_LOYALTY_POINT_VALUE=100_000,
)


@override_settings(**THRESHOLDS)
def test_fresh_customer_levels_use_upgrade_thresholds():
    assert calculate_membership_level(0) == User.LEVEL_BASIC
    assert calculate_membership_level(4_999_999) == User.LEVEL_BASIC
    assert calculate_membership_level(5_000_000) == User.LEVEL_LOYAL
    assert calculate_membership_level(12_000_000) == User.LEVEL_VIP


@override_settings(**THRESHOLDS)
def test_existing_tier_is_kept_above_maintain_threshold():
    assert determine_membership_level(User.LEVEL_VIP, 8_000_000) == User.LEVEL_VIP
    assert determine_membership_level(User.LEVEL_VIP, 7_999_999) == User.LEVEL_LOYAL
    assert determine_membership_level(User.LEVEL_LOYAL, 3_000_000) == User.LEVEL_LOYAL
    assert determine_membership_level(User.LEVEL_LOYAL, 2_999_999) == User.LEVEL_BASIC
    # upgrade thresholds win whatever the current tier
    assert determine_membership_level(User.LEVEL_BASIC, 12_000_000) == User.LEVEL_VIP


def test_audience_eligibility():
    assert is_eligible_for_promotion(User.LEVEL_BASIC, 'All')
    assert not is_eligible_for_promotion(User.LEVEL_BASIC, 'Loyal+')
    assert is_eligible_for_promotion(User.LEVEL_VIP, 'Loyal+')
    assert is_eligible_for_promotion(User.LEVEL_VIP, 'VIP+')
    assert not is_eligible_for_promotion(User.LEVEL_LOYAL, 'VIP+')
    assert not is_eligible_for_promotion(User.LEVEL_VIP, 'Gold')


@override_settings(**THRESHOLDS)
def test_next_level_requirement():
    assert get_next_level_requirement(User.LEVEL_BASIC, 1_000_000) == {
        'nextLevel': User.LEVEL_LOYAL, 'requiredSpending': 5_000_000, 'remaining': 4_000_000,
    }
    assert get_next_level_requirement(User.LEVEL_LOYAL, 13_000_000)['remaining'] == 0
    assert get_next_level_requirement(User.LEVEL_VIP, 0)['nextLevel'] is None


@override_settings(**THRESHOLDS)
def test_loyalty_points_are_whole_units():
    assert loyalty_points(0) == 0
    assert loyalty_points(99_999) == 0
    assert loyalty_points(250_000) == 2


@override_settings(**THRESHOLDS)
def test_invoice_upgrades_customer(customer, branch):
    invoice, services, membership = create_invoice(
        customer=customer, branch=branch, lines=[{'service_type': 'medical-exam', 'unit_price': 6_000_000}],
    )
    customer.refresh_from_db()
    assert invoice.final_amount == 6_000_000
    assert membership['upgraded'] is True
    assert customer.membership_level == User.LEVEL_LOYAL
    assert customer.yearly_spending == 6_000_000


@override_settings(**THRESHOLDS)
def test_recalculation_downgrades_without_spending(customer, branch):
    customer.membership_level = User.LEVEL_VIP
    customer.save(update_fields=['membership_level'])
    Invoice.objects.create(customer=customer, branch=branch, total_amount=4_000_000, final_amount=4_000_000)

    counters = recalculate_all_memberships()

    customer.refresh_from_db()
    assert counters == {'updated': 1, 'upgraded': 0, 'downgraded': 1, 'errors': 0}
    assert customer.membership_level == User.LEVEL_LOYAL
    assert get_membership_stats() == {'basic': 0, 'loyal': 1, 'vip': 0, 'total': 1}


@override_settings(**THRESHOLDS)
def test_update_is_idempotent(customer):
    first = update_customer_membership(customer)
    second = update_customer_membership(customer)
    assert first['newLevel'] == second['newLevel'] == User.LEVEL_BASIC
    assert not second['upgraded'] and not second['downgraded']
