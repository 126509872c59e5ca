"""
Per-branch stock bookkeeping for products, vaccines and vaccine packages.

All mutations lock the inventory row (``select_for_update``) inside a
transaction so concurrent sales cannot drive stock below zero.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction
from django.db.models import Max
from django.utils import timezone

from core.exceptions import DomainError, InsufficientStockError
from core.models import (
    Branch, Product, ProductInventory, Vaccine, VaccineInventory,
    VaccinePackage, PackageInventory,
)

logger = logging.getLogger(__name__)

CRITICAL_THRESHOLD = 3
LOW_THRESHOLD = 10

# kind -> (inventory model, item field name)
KINDS = {
    'product': (ProductInventory, 'product'),
    'vaccine': (VaccineInventory, 'vaccine'),
    'package': (PackageInventory, 'package'),
}


def get_stock_status(quantity: int) -> str:
    if quantity <= 0:
        return 'out'
    if quantity < CRITICAL_THRESHOLD:
        return 'critical'
    if quantity < LOW_THRESHOLD:
        return 'low'
    return 'normal'


def _kind(kind: str):
    try:
        return KINDS[kind]
    except KeyError:
        raise DomainError(f'Unknown inventory kind: {kind}')


def _row_filter(kind: str, branch, item) -> dict:
    _, field = _kind(kind)
    return {'branch': branch, field: item}


def available_stock(kind: str, branch, item) -> int:
    model, _ = _kind(kind)
    row = model.objects.filter(**_row_filter(kind, branch, item)).only('quantity').first()
    return row.quantity if row else 0


def validate_stock(kind: str, branch, item, requested: int) -> tuple[bool, int, str]:
    """Return ``(valid, available, message)`` without touching stock."""
    available = available_stock(kind, branch, item)
    if available == 0:
        return False, 0, 'Out of stock'
    if available < requested:
        return False, available, f'Insufficient stock. Only {available} units available.'
    return True, available, ''


@transaction.atomic
def deduct_stock(kind: str, branch, item, quantity: int, *, message: Optional[str] = None) -> int:
    """Take ``quantity`` units out of a branch's stock and return what is left."""
    if quantity <= 0:
        raise DomainError('Quantity must be positive.')
    model, _ = _kind(kind)
    row = model.objects.select_for_update().filter(**_row_filter(kind, branch, item)).first()
    if row is None or row.quantity < quantity:
        available = row.quantity if row else 0
        logger.warning('stock deduction refused: %s %s at branch %s, requested %s, available %s',
                       kind, getattr(item, 'pk', item), getattr(branch, 'pk', branch), quantity, available)
        if message is None:
            message = 'Out of stock' if available == 0 else f'Insufficient stock. Only {available} units available.'
        raise InsufficientStockError(message)
    row.quantity -= quantity
    row.save(update_fields=['quantity', 'updated_at'])
    return row.quantity


@transaction.atomic
def restore_stock(kind: str, branch, item, quantity: int) -> int:
    model, _ = _kind(kind)
    row, _ = model.objects.select_for_update().get_or_create(
        **_row_filter(kind, branch, item), defaults={'quantity': 0}
    )
    row.quantity += quantity
    row.save(update_fields=['quantity', 'updated_at'])
    return row.quantity


@transaction.atomic
def update_inventory(kind: str, branch, item, quantity: int):
    """Set the stock level of an item (restock)."""
    if quantity < 0:
        raise DomainError('Quantity cannot be negative.')
    model, _ = _kind(kind)
    row, _ = model.objects.select_for_update().get_or_create(
        **_row_filter(kind, branch, item), defaults={'quantity': 0}
    )
    row.quantity = quantity
    row.last_restocked = timezone.now()
    row.save(update_fields=['quantity', 'last_restocked', 'updated_at'])
    return row


@transaction.atomic
def adjust_stock(kind: str, branch, item, adjustment: int):
    """Apply a signed correction; the result is floored at zero."""
    model, _ = _kind(kind)
    row, _ = model.objects.select_for_update().get_or_create(
        **_row_filter(kind, branch, item), defaults={'quantity': 0}
    )
    row.quantity = max(0, row.quantity + adjustment)
    if adjustment > 0:
        row.last_restocked = timezone.now()
    row.save(update_fields=['quantity', 'last_restocked', 'updated_at'])
    return row


def get_stock_alerts(branch: Optional[Branch] = None) -> list[dict]:
    """Products and vaccines whose stock is low, critical or out."""
    alerts: list[dict] = []
    for kind, model, field in (('product', ProductInventory, 'product'), ('vaccine', VaccineInventory, 'vaccine')):
        qs = model.objects.select_related('branch', field).filter(quantity__lt=LOW_THRESHOLD)
        if branch is not None:
            qs = qs.filter(branch=branch)
        for row in qs.order_by('quantity', 'id'):
            item = getattr(row, field)
            alerts.append({
                'type': kind,
                'itemId': item.id,
                'itemName': item.name,
                'branchId': row.branch_id,
                'branchName': row.branch.name,
                'quantity': row.quantity,
                'status': get_stock_status(row.quantity),
            })
    return alerts


def branch_product_stock(branch: Branch) -> list[dict]:
    """Every product with this branch's stock (0 when never stocked)."""
    stock = dict(ProductInventory.objects.filter(branch=branch).values_list('product_id', 'quantity'))
    data = []
    for p in Product.objects.order_by('name'):
        qty = stock.get(p.id, 0)
        data.append({
            'id': p.id,
            'name': p.name,
            'category': p.product_type,
            'price': p.price,
            'stock': qty,
            'status': get_stock_status(qty),
        })
    return data


def branch_vaccine_stock(branch: Branch) -> list[dict]:
    stock = dict(VaccineInventory.objects.filter(branch=branch).values_list('vaccine_id', 'quantity'))
    return [{
        'id': v.id,
        'name': v.name,
        'price': v.price,
        'stock': stock.get(v.id, 0),
    } for v in Vaccine.objects.order_by('name')]


def branch_package_stock(branch: Branch) -> list[dict]:
    stock = dict(PackageInventory.objects.filter(branch=branch).values_list('package_id', 'quantity'))
    data = []
    for p in VaccinePackage.objects.prefetch_related('included__vaccine').order_by('name'):
        data.append({
            'id': p.id,
            'name': p.name,
            'price': p.price,
            'cycle': p.cycle,
            'monthlyMilestone': p.monthly_milestone,
            'stock': stock.get(p.id, 0),
            'vaccines': [
                {'vaccineId': iv.vaccine_id, 'vaccineName': iv.vaccine.name, 'dosage': iv.dosage}
                for iv in p.included.all()
            ],
        })
    return data


def branch_inventory_summary() -> list[dict]:
    """Stock of every kind, grouped per branch."""
    result = []
    for branch in Branch.objects.order_by('id'):
        last = None
        sections = {}
        for key, model in (('products', ProductInventory), ('vaccines', VaccineInventory),
                           ('vaccinePackages', PackageInventory)):
            _, field = next((m, f) for m, f in KINDS.values() if m is model)
            qs = model.objects.filter(branch=branch)
            sections[key] = [
                {'itemId': row[f'{field}_id'], 'quantity': row['quantity']}
                for row in qs.values(f'{field}_id', 'quantity').order_by(f'{field}_id')
            ]
            ts = qs.aggregate(m=Max('updated_at'))['m']
            if ts and (last is None or ts > last):
                last = ts
        result.append({
            'branchId': branch.id,
            'branchName': branch.name,
            **sections,
            'lastUpdated': last.isoformat() if last else None,
        })
    return result
