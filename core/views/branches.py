from django.db import IntegrityError, transaction
from django.db.models import ProtectedError
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import ConflictError, NotFoundError
from core.models import Branch
from core.permissions import IsManagerOrReadOnly
from core.serializers.staff import BranchSerializer
from core.services.audit import log_action


def serialize_branch(b: Branch) -> dict:
    return {
        'id': b.id,
        'name': b.name,
        'address': b.address,
        'phone': b.phone,
        'openingAt': b.opening_at.isoformat() if b.opening_at else None,
        'closingAt': b.closing_at.isoformat() if b.closing_at else None,
    }


def _apply(branch: Branch, v: dict) -> None:
    branch.name = v['name']
    branch.address = v.get('address', '')
    branch.phone = v.get('phone', '')
    branch.opening_at = v.get('openingAt')
    branch.closing_at = v.get('closingAt')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsManagerOrReadOnly])
def branches(request):
    if request.method == 'GET':
        return Response({'ok': True, 'data': [serialize_branch(b) for b in Branch.objects.order_by('id')]})
    s = BranchSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    branch = Branch()
    _apply(branch, s.validated_data)
    try:
        with transaction.atomic():
            branch.save()
    except IntegrityError:
        raise ConflictError('A branch with this name already exists.')
    log_action(user=request.user, action='branch_create', object_type='branch', object_id=branch.id)
    return Response({'ok': True, 'data': serialize_branch(branch)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsManagerOrReadOnly])
def branch_detail(request, branch_id: int):
    branch = Branch.objects.filter(id=branch_id).first()
    if branch is None:
        raise NotFoundError('Branch not found.')
    if request.method == 'GET':
        return Response({'ok': True, 'data': serialize_branch(branch)})
    if request.method == 'DELETE':
        try:
            with transaction.atomic():
                branch.delete()
        except ProtectedError:
            raise ConflictError('Branches with invoices cannot be deleted.')
        log_action(user=request.user, action='branch_delete', object_type='branch', object_id=branch_id)
        return Response(status=status.HTTP_204_NO_CONTENT)
    s = BranchSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    _apply(branch, s.validated_data)
    try:
        with transaction.atomic():
            branch.save()
    except IntegrityError:
        raise ConflictError('A branch with this name already exists.')
    log_action(user=request.user, action='branch_update', object_type='branch', object_id=branch.id)
    return Response({'ok': True, 'data': serialize_branch(branch)})
