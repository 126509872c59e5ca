"""
Product catalogue: the public storefront listing, keyword search over
products and medicines, and product maintenance for managers.
"""
from __future__ import annotations

import math

from django.db.models import ProtectedError, Q
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from core.exceptions import ConflictError, NotFoundError
from core.models import Medicine, Product
from core.permissions import IsManagerRole, MANAGER_ROLES
from core.serializers.commerce import SORT_FIELDS, ProductListQuerySerializer, ProductSerializer
from core.services.audit import log_action

SEARCH_LIMIT = 20
PRODUCT_CATEGORIES = [c[0] for c in Product.TYPE_CHOICES]


def serialize_product(p: Product) -> dict:
    return {
        'id': p.id,
        'name': p.name,
        'category': p.product_type,
        'price': p.price,
        'description': p.description,
        'createdAt': p.created_at.isoformat() if p.created_at else None,
    }


@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def products(request):
    """Paged product listing; POST creates a product (managers)."""
    if request.method == 'POST':
        user = request.user
        if not (user and user.is_authenticated):
            return Response({'ok': False, 'detail': 'Authentication required.'}, status=401)
        if user.role not in MANAGER_ROLES:
            return Response({'ok': False, 'detail': 'forbidden'}, status=403)
        s = ProductSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        v = s.validated_data
        p = Product.objects.create(name=v['name'], product_type=v['category'], price=v['price'],
                                   description=v.get('description', ''))
        log_action(user=user, action='product_create', object_type='product', object_id=p.id)
        return Response({'ok': True, 'data': serialize_product(p)}, status=status.HTTP_201_CREATED)

    q = ProductListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    v = q.validated_data
    qs = Product.objects.all()
    if v.get('search'):
        qs = qs.filter(Q(name__icontains=v['search']) | Q(description__icontains=v['search']))
    if v['category'] != 'all':
        qs = qs.filter(product_type=v['category'])
    order = SORT_FIELDS[v['sortBy']]
    qs = qs.order_by(('-' if v['sortOrder'] == 'DESC' else '') + order, 'id')
    total = qs.count()
    page, limit = v['page'], v['limit']
    start = (page - 1) * limit
    data = [serialize_product(p) for p in qs[start:start + limit]]
    return Response({
        'ok': True,
        'data': data,
        'meta': {
            'page': page,
            'limit': limit,
            'totalCount': total,
            'totalPages': math.ceil(total / limit),
        },
    })


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsManagerRole])
def product_detail(request, product_id: int):
    p = Product.objects.filter(id=product_id).first()
    if p is None:
        raise NotFoundError('Product not found.')
    if request.method == 'GET':
        return Response({'ok': True, 'data': serialize_product(p)})
    if request.method == 'DELETE':
        try:
            p.delete()
        except ProtectedError:
            raise ConflictError('Products that have been sold cannot be deleted.')
        log_action(user=request.user, action='product_delete', object_type='product', object_id=product_id)
        return Response(status=status.HTTP_204_NO_CONTENT)
    s = ProductSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    p.name = v['name']
    p.product_type = v['category']
    p.price = v['price']
    p.description = v.get('description', '')
    p.save()
    log_action(user=request.user, action='product_update', object_type='product', object_id=p.id)
    return Response({'ok': True, 'data': serialize_product(p)})


@api_view(['GET'])
@permission_classes([AllowAny])
def search(request):
    """Keyword search over products and medicines (``q``, ``category``)."""
    keyword = (request.query_params.get('q') or '').strip()
    category = request.query_params.get('category') or 'all'
    if not keyword:
        return Response({'ok': True, 'products': [], 'medicines': [], 'message': 'Please enter a search keyword.'})
    found_products: list[dict] = []
    found_medicines: list[dict] = []
    if category == 'all' or category in PRODUCT_CATEGORIES:
        qs = Product.objects.filter(Q(name__icontains=keyword) | Q(description__icontains=keyword))
        if category != 'all':
            qs = qs.filter(product_type=category)
        found_products = [serialize_product(p) for p in qs.order_by('name')[:SEARCH_LIMIT]]
    if category in ('all', 'medication'):
        qs = Medicine.objects.filter(Q(name__icontains=keyword) | Q(description__icontains=keyword))
        found_medicines = [
            {'id': m.id, 'name': m.name, 'category': 'medication', 'price': m.price, 'description': m.description}
            for m in qs.order_by('name')[:SEARCH_LIMIT]
        ]
    return Response({'ok': True, 'products': found_products, 'medicines': found_medicines})
