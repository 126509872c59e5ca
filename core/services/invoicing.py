"""
Invoice creation and customer ratings.

An invoice bills one or more service instances.  Promotions are applied
per service line, and the customer's membership tier is recomputed in
the same transaction so tier changes never lag behind spending.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction

from core.exceptions import DomainError
from core.models import Invoice, Service, User
from core.services.audit import log_action
from core.services.membership import update_customer_membership
from core.services.promotions import calculate_service_discount

logger = logging.getLogger(__name__)

RATING_MIN = 0
RATING_MAX = 5


def create_invoice(*, customer: User, branch, lines: list[dict], created_by: Optional[User] = None,
                   payment_method: str = Invoice.PAYMENT_CASH) -> tuple[Invoice, list[Service], dict]:
    """Bill ``lines`` (``{'service_type', 'unit_price'}``) to ``customer``.

    Returns the invoice, its services (in line order) and the membership
    update result.  Must run inside the caller's transaction when other
    rows (stock, clinical records) are written alongside.
    """
    if not lines:
        raise DomainError('An invoice needs at least one service.')
    if payment_method not in dict(Invoice.PAYMENT_CHOICES):
        raise DomainError(f'Unknown payment method: {payment_method}')
    with transaction.atomic():
        locked_customer = User.objects.select_for_update().get(pk=customer.pk)
        level = locked_customer.membership_level
        priced = [
            calculate_service_discount(line['service_type'], line['unit_price'], level, branch)
            for line in lines
        ]
        total = sum(p['basePrice'] for p in priced)
        discount = sum(p['discountAmount'] for p in priced)
        invoice = Invoice.objects.create(
            created_by=created_by,
            branch=branch,
            customer=locked_customer,
            payment_method=payment_method,
            total_amount=total,
            total_discount=discount,
            final_amount=total - discount,
        )
        services = [
            Service.objects.create(
                invoice=invoice,
                service_type=line['service_type'],
                unit_price=p['basePrice'],
                discount_amount=p['discountAmount'],
                applied_promotions=[a['id'] for a in p['appliedPromotions']],
            )
            for line, p in zip(lines, priced)
        ]
        membership = update_customer_membership(locked_customer)
        log_action(user=created_by or locked_customer, action='invoice_create', object_type='invoice',
                   object_id=invoice.id,
                   detail={'total': total, 'discount': discount, 'branch': getattr(branch, 'id', None)})
    customer.membership_level = locked_customer.membership_level
    customer.yearly_spending = locked_customer.yearly_spending
    logger.info('invoice %s created for customer %s: %s VND (discount %s)',
                invoice.id, customer.pk, invoice.final_amount, discount)
    return invoice, services, membership


def _check_rating(value, field: str):
    if value is None:
        return None
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise DomainError(f'{field} must be an integer.')
    if not RATING_MIN <= value <= RATING_MAX:
        raise DomainError(f'{field} must be between {RATING_MIN} and {RATING_MAX}.')
    return value


def rate_invoice(invoice: Invoice, customer: User, *, sale_attitude=None, overall=None) -> Invoice:
    if invoice.customer_id != customer.id:
        raise DomainError('You can only rate your own invoices.')
    sale_attitude = _check_rating(sale_attitude, 'saleAttitudeRating')
    overall = _check_rating(overall, 'overallSatisfactionRating')
    if sale_attitude is not None:
        invoice.sale_attitude_rating = sale_attitude
    if overall is not None:
        invoice.overall_satisfaction_rating = overall
    invoice.save(update_fields=['sale_attitude_rating', 'overall_satisfaction_rating'])
    return invoice


def rate_service(service: Service, customer: User, *, quality=None, attitude=None,
                 comment: Optional[str] = None) -> Service:
    if service.invoice.customer_id != customer.id:
        raise DomainError('You can only rate your own services.')
    quality = _check_rating(quality, 'qualityRating')
    attitude = _check_rating(attitude, 'employeeAttitudeRating')
    if quality is not None:
        service.quality_rating = quality
    if attitude is not None:
        service.employee_attitude_rating = attitude
    if comment is not None:
        service.comment = comment
    service.save(update_fields=['quality_rating', 'employee_attitude_rating', 'comment'])
    return service


def serialize_invoice(inv: Invoice) -> dict:
    return {
        'id': inv.id,
        'branchId': inv.branch_id,
        'branchName': inv.branch.name if inv.branch_id else None,
        'customerId': inv.customer_id,
        'customerName': inv.customer.display_name,
        'createdBy': inv.created_by_id,
        'paymentMethod': inv.payment_method,
        'totalAmount': inv.total_amount,
        'totalDiscount': inv.total_discount,
        'finalAmount': inv.final_amount,
        'saleAttitudeRating': inv.sale_attitude_rating,
        'overallSatisfactionRating': inv.overall_satisfaction_rating,
        'createdAt': inv.created_at.isoformat(),
        'services': [
            {
                'id': s.id,
                'serviceType': s.service_type,
                'unitPrice': s.unit_price,
                'discountAmount': s.discount_amount,
                'qualityRating': s.quality_rating,
                'employeeAttitudeRating': s.employee_attitude_rating,
                'comment': s.comment,
            }
            for s in inv.services.all()
        ],
    }
