"""
Storefront purchases.

A purchase takes the products out of the chosen branch's stock and bills
them as one ``purchase`` service on a new invoice.  Stock and invoice are
written in the same transaction; a shortage on any line rolls back the
whole order.
"""
from __future__ import annotations

import logging

from django.db import transaction

from core.exceptions import DomainError, NotFoundError
from core.models import Branch, Invoice, Product, SellProduct, User, SERVICE_PURCHASE
from core.services.inventory import deduct_stock
from core.services.invoicing import create_invoice

logger = logging.getLogger(__name__)


def buy(customer: User, branch_id, items: list[dict], payment_method: str = Invoice.PAYMENT_CASH) -> dict:
    if not items:
        raise DomainError('Order must contain at least one item.')
    branch = Branch.objects.filter(id=branch_id).first()
    if branch is None:
        raise NotFoundError('Branch not found.')
    # merge repeated products so each inventory row is locked once
    quantities: dict[int, int] = {}
    for item in items:
        quantities[item['product_id']] = quantities.get(item['product_id'], 0) + int(item['quantity'])
    products = {p.id: p for p in Product.objects.filter(id__in=quantities)}
    missing = [pid for pid in quantities if pid not in products]
    if missing:
        raise NotFoundError(f'Product not found: {missing[0]}')

    with transaction.atomic():
        for pid, qty in quantities.items():
            product = products[pid]
            deduct_stock('product', branch, product, qty,
                         message=f'Insufficient stock for {product.name}.')
        subtotal = sum(products[pid].price * qty for pid, qty in quantities.items())
        invoice, services, membership = create_invoice(
            customer=customer, branch=branch, created_by=None, payment_method=payment_method,
            lines=[{'service_type': SERVICE_PURCHASE, 'unit_price': subtotal}],
        )
        for pid, qty in quantities.items():
            SellProduct.objects.create(service=services[0], product=products[pid],
                                       quantity=qty, unit_price=products[pid].price)
    logger.info('order %s: customer %s bought %s items at branch %s',
                invoice.id, customer.pk, sum(quantities.values()), branch.id)
    return {
        'invoice_id': invoice.id,
        'service_id': services[0].id,
        'branch_id': branch.id,
        'payment_method': invoice.payment_method,
        'total_amount': invoice.total_amount,
        'total_discount': invoice.total_discount,
        'final_amount': invoice.final_amount,
        'items': [
            {'product_id': pid, 'product_name': products[pid].name, 'quantity': qty,
             'unit_price': products[pid].price}
            for pid, qty in quantities.items()
        ],
        'membership': membership,
    }


def customer_orders(customer: User) -> list[dict]:
    invoices = (
        Invoice.objects.select_related('branch')
        .prefetch_related('services__products__product')
        .filter(customer=customer, services__service_type=SERVICE_PURCHASE)
        .distinct().order_by('-created_at')
    )
    data = []
    for inv in invoices:
        lines = [
            {
                'productId': sp.product_id,
                'productName': sp.product.name,
                'quantity': sp.quantity,
                'unitPrice': sp.unit_price,
            }
            for s in inv.services.all() for sp in s.products.all()
        ]
        data.append({
            'id': inv.id,
            'branchId': inv.branch_id,
            'branchName': inv.branch.name,
            'paymentMethod': inv.payment_method,
            'totalAmount': inv.total_amount,
            'totalDiscount': inv.total_discount,
            'finalAmount': inv.final_amount,
            'createdAt': inv.created_at.isoformat(),
            'items': lines,
        })
    return data
