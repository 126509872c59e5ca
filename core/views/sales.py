"""
Sales counter endpoints under ``/api/sales``: product stock of the
current branch and the day's sales.
"""
from __future__ import annotations

import datetime as dt

from django.db.models import Count, Sum
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import NotFoundError
from core.models import Invoice, Product, SERVICE_PURCHASE
from core.permissions import IsSalesRole
from core.serializers.commerce import StockAdjustSerializer, StockUpdateSerializer
from core.services.audit import log_action
from core.services.inventory import adjust_stock, branch_product_stock, get_stock_alerts, get_stock_status, update_inventory
from core.services.invoicing import serialize_invoice
from core.services.staff import require_branch
from core.views.branches import serialize_branch

SERVICE_INVOICE_LIMIT = 50


def _today_purchases(branch):
    today = timezone.localdate()
    start = timezone.make_aware(dt.datetime.combine(today, dt.time.min))
    return Invoice.objects.filter(
        branch=branch, created_at__gte=start, created_at__lt=start + dt.timedelta(days=1),
        services__service_type=SERVICE_PURCHASE,
    ).distinct()


def _product_or_404(product_id) -> Product:
    product = Product.objects.filter(id=product_id).first()
    if product is None:
        raise NotFoundError('Product not found.')
    return product


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsSalesRole])
def my_branch(request):
    return Response({'ok': True, 'data': serialize_branch(require_branch(request.user))})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsSalesRole])
def inventory(request):
    branch = require_branch(request.user)
    return Response({'ok': True, 'branchId': branch.id, 'data': branch_product_stock(branch)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsSalesRole])
def update_stock(request):
    s = StockUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    branch = require_branch(request.user)
    product = _product_or_404(s.validated_data['product_id'])
    row = update_inventory('product', branch, product, s.validated_data['quantity'])
    log_action(user=request.user, action='stock_update', object_type='product', object_id=product.id,
               detail={'branch': branch.id, 'quantity': row.quantity})
    return Response({'ok': True, 'productId': product.id, 'stock': row.quantity,
                     'status': get_stock_status(row.quantity)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsSalesRole])
def adjust(request):
    s = StockAdjustSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    branch = require_branch(request.user)
    product = _product_or_404(s.validated_data['product_id'])
    row = adjust_stock('product', branch, product, s.validated_data['adjustment'])
    log_action(user=request.user, action='stock_adjust', object_type='product', object_id=product.id,
               detail={'branch': branch.id, 'adjustment': s.validated_data['adjustment'], 'quantity': row.quantity})
    return Response({'ok': True, 'productId': product.id, 'stock': row.quantity,
                     'status': get_stock_status(row.quantity)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsSalesRole])
def today_sales(request):
    branch = require_branch(request.user)
    qs = (
        _today_purchases(branch).select_related('customer', 'branch')
        .prefetch_related('services').order_by('-created_at')
    )
    return Response({'ok': True, 'data': [serialize_invoice(inv) for inv in qs]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsSalesRole])
def stats(request):
    branch = require_branch(request.user)
    ids = _today_purchases(branch).values('id')
    agg = Invoice.objects.filter(id__in=ids).aggregate(orders=Count('id'), revenue=Sum('final_amount'))
    return Response({'ok': True, 'data': {
        'ordersToday': agg['orders'],
        'revenueToday': int(agg['revenue'] or 0),
    }})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsSalesRole])
def service_invoices(request):
    """Latest invoices of the branch that bill clinical services."""
    branch = require_branch(request.user)
    qs = (
        Invoice.objects.select_related('customer', 'branch').prefetch_related('services')
        .filter(branch=branch).exclude(services__service_type=SERVICE_PURCHASE)
        .distinct().order_by('-created_at')[:SERVICE_INVOICE_LIMIT]
    )
    return Response({'ok': True, 'data': [serialize_invoice(inv) for inv in qs]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsSalesRole])
def stock_alerts(request):
    branch = require_branch(request.user)
    return Response({'ok': True, 'data': get_stock_alerts(branch)})
