import pytest

from core.exceptions import DomainError, InsufficientStockError
from core.models import ProductInventory, Vaccine, VaccineInventory
from core.services.inventory import (
    adjust_stock, available_stock, deduct_stock, get_stock_alerts, get_stock_status, restore_stock,
    update_inventory, validate_stock,
)

pytestmark = pytest.mark.django_db


@pytest.mark.parametrize('qty,expected', [(0, 'out'), (2, 'critical'), (3, 'low'), (9, 'low'), (10, 'normal')])
def test_stock_status_bands(qty, expected):
    assert get_stock_status(qty) == expected


def test_deduct_and_restore(branch, product):
    ProductInventory.objects.create(branch=branch, product=product, quantity=5)
    assert deduct_stock('product', branch, product, 3) == 2
    assert restore_stock('product', branch, product, 1) == 3
    assert available_stock('product', branch, product) == 3


def test_deduct_refuses_to_go_negative(branch, product):
    ProductInventory.objects.create(branch=branch, product=product, quantity=2)
    with pytest.raises(InsufficientStockError) as exc:
        deduct_stock('product', branch, product, 3)
    assert 'Only 2 units available' in str(exc.value.detail)
    assert available_stock('product', branch, product) == 2


def test_deduct_without_row_is_out_of_stock(branch, product):
    with pytest.raises(InsufficientStockError) as exc:
        deduct_stock('product', branch, product, 1)
    assert str(exc.value.detail) == 'Out of stock'


def test_validate_stock_does_not_mutate(branch, product):
    ProductInventory.objects.create(branch=branch, product=product, quantity=4)
    assert validate_stock('product', branch, product, 4) == (True, 4, '')
    ok, available, message = validate_stock('product', branch, product, 5)
    assert not ok and available == 4 and 'Only 4' in message
    assert available_stock('product', branch, product) == 4


def test_update_and_adjust(branch, product):
    row = update_inventory('product', branch, product, 7)
    assert row.quantity == 7 and row.last_restocked is not None
    assert adjust_stock('product', branch, product, -10).quantity == 0
    assert adjust_stock('product', branch, product, 4).quantity == 4
    with pytest.raises(DomainError):
        update_inventory('product', branch, product, -1)


def test_unknown_kind_is_rejected(branch, product):
    with pytest.raises(DomainError):
        available_stock('medicine', branch, product)


def test_alerts_cover_products_and_vaccines(branch, other_branch, product):
    vaccine = Vaccine.objects.create(name='Rabies', price=250_000)
    ProductInventory.objects.create(branch=branch, product=product, quantity=0)
    VaccineInventory.objects.create(branch=branch, vaccine=vaccine, quantity=5)
    VaccineInventory.objects.create(branch=other_branch, vaccine=vaccine, quantity=50)

    alerts = get_stock_alerts(branch)

    assert [(a['type'], a['status']) for a in alerts] == [('product', 'out'), ('vaccine', 'low')]
    assert get_stock_alerts(other_branch) == []
