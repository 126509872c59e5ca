import datetime as dt

import pytest
from django.test import override_settings
from django.utils import timezone

from core.models import Promotion, User
from core.services.promotions import (
    applicable_promotions, best_discount_for, calculate_invoice_totals, calculate_service_discount,
    promotion_status, validate_promotion,
)

pytestmark = pytest.mark.django_db


def _promo(**kw):
    today = timezone.localdate()
    fields = dict(
        description='Promo',
        target_audience=Promotion.AUDIENCE_ALL,
        applicable_service_types=['medical-exam'],
        discount_rate=10,
        start_date=today - dt.timedelta(days=1),
        end_date=today + dt.timedelta(days=1),
    )
    fields.update(kw)
    return Promotion.objects.create(**fields)


def test_global_and_branch_promotions_stack(branch, other_branch):
    _promo(discount_rate=10)
    _promo(discount_rate=5, branch=branch)
    _promo(discount_rate=15, branch=other_branch)

    result = calculate_service_discount('medical-exam', 200_000, User.LEVEL_BASIC, branch)

    assert result['discountRate'] == 15
    assert result['discountAmount'] == 30_000
    assert result['finalPrice'] == 170_000
    assert sorted(a['scope'] for a in result['appliedPromotions']) == ['branch', 'global']


def test_audience_and_service_type_filter(branch):
    _promo(target_audience=Promotion.AUDIENCE_VIP)
    _promo(applicable_service_types=['purchase'])
    assert applicable_promotions('medical-exam', User.LEVEL_LOYAL, branch) == []
    assert len(applicable_promotions('medical-exam', User.LEVEL_VIP, branch)) == 1


def test_inactive_and_expired_promotions_are_ignored(branch):
    today = timezone.localdate()
    _promo(is_active=False)
    expired = _promo(start_date=today - dt.timedelta(days=10), end_date=today - dt.timedelta(days=1))
    upcoming = _promo(start_date=today + dt.timedelta(days=2), end_date=today + dt.timedelta(days=5))
    assert applicable_promotions('medical-exam', User.LEVEL_VIP, branch) == []
    assert promotion_status(expired) == 'expired'
    assert promotion_status(upcoming) == 'upcoming'


@override_settings(PETCARE_MAX_DISCOUNT_RATE=20)
def test_stacked_rate_is_capped(branch):
    _promo(discount_rate=15)
    _promo(discount_rate=15)
    result = calculate_service_discount('medical-exam', 100_000, User.LEVEL_BASIC, branch)
    assert result['discountRate'] == 20
    assert result['finalPrice'] == 80_000


def test_discount_is_floored_to_whole_units(branch):
    _promo(discount_rate=15)
    result = calculate_service_discount('medical-exam', 99_999, User.LEVEL_BASIC, branch)
    assert result['discountAmount'] == 14_999


def test_zero_price_gets_no_discount(branch):
    _promo()
    result = calculate_service_discount('medical-exam', 0, User.LEVEL_BASIC, branch)
    assert result['discountAmount'] == 0 and result['appliedPromotions'] == []


def test_invoice_totals_add_vaccine_cost(branch):
    _promo(applicable_service_types=['single-vaccine'], discount_rate=10)
    totals = calculate_invoice_totals([
        {'serviceType': 'single-vaccine', 'basePrice': 50_000, 'vaccineCost': 250_000},
        {'serviceType': 'purchase', 'basePrice': 100_000},
    ], User.LEVEL_BASIC, branch)
    assert totals['subtotal'] == 400_000
    assert totals['totalDiscount'] == 30_000
    assert totals['finalAmount'] == 370_000


def test_best_discount_picks_largest_single_rate(branch):
    _promo(discount_rate=5)
    _promo(discount_rate=12)
    assert best_discount_for(User.LEVEL_BASIC, 'medical-exam', branch) == 12
    assert best_discount_for(User.LEVEL_BASIC, 'purchase', branch) == 0


def test_validate_promotion_rules():
    today = timezone.localdate()
    good = {
        'description': 'Spring', 'target_audience': 'All', 'applicable_service_types': ['purchase'],
        'discount_rate': 10, 'start_date': today, 'end_date': today + dt.timedelta(days=1),
    }
    assert validate_promotion(good) == []
    assert validate_promotion({**good, 'discount_rate': 20}) == ['Discount rate must be between 5% and 15%.']
    assert validate_promotion({**good, 'end_date': today}) == ['Start date must be before end date.']
    assert validate_promotion({**good, 'applicable_service_types': ['grooming']}) == ['Unknown service type.']
    assert 'Description is required.' in validate_promotion({**good, 'description': ' '})
