"""
Staff administration: employee list, account creation and transfers
between branches.  Managers only.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import NotFoundError
from core.models import Branch, StaffTransfer, User
from core.permissions import IsManagerRole
from core.serializers.clinic import id_filters
from core.serializers.staff import StaffCreateSerializer, TransferSerializer
from core.services.staff import (
    EMPLOYEE_ROLES, active_mobilizations, create_employee, serialize_employee, serialize_transfer,
    transfer_employee,
)


def _branch(branch_id):
    branch = Branch.objects.filter(id=branch_id).first()
    if branch is None:
        raise NotFoundError('Branch not found.')
    return branch


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsManagerRole])
def staff(request):
    if request.method == 'POST':
        s = StaffCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        v = s.validated_data
        user = create_employee(
            username=v['username'],
            password=v['password'],
            full_name=v['fullName'],
            role=v['role'],
            email=v.get('email', ''),
            phone=v.get('phone', ''),
            gender=v.get('gender', ''),
            date_of_birth=v.get('dateOfBirth'),
            base_salary=v.get('baseSalary', 0),
            specialization=v.get('specialization', ''),
            branch=_branch(v['branchId']) if v.get('branchId') else None,
            start_date=v.get('startDate'),
            created_by=request.user,
        )
        return Response({'ok': True, 'data': serialize_employee(user)}, status=status.HTTP_201_CREATED)

    qs = User.objects.filter(role__in=EMPLOYEE_ROLES).select_related('employee_profile').order_by('id')
    role = request.query_params.get('role')
    if role:
        qs = qs.filter(role=role)
    branch_id = id_filters(request).get('branchId')
    if branch_id:
        ids = active_mobilizations().filter(branch_id=branch_id).values_list('employee_id', flat=True)
        qs = qs.filter(id__in=ids)
    return Response({'ok': True, 'data': [serialize_employee(u) for u in qs]})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsManagerRole])
def staff_transfer(request, staff_id: int):
    employee = User.objects.filter(id=staff_id, role__in=EMPLOYEE_ROLES).first()
    if employee is None:
        raise NotFoundError('Employee not found.')
    s = TransferSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    transfer = transfer_employee(
        employee, _branch(v['toBranchId']),
        transfer_date=v.get('transferDate'),
        reason=v.get('reason', ''),
        notes=v.get('notes', ''),
        approved_by=request.user,
    )
    return Response({'ok': True, 'data': serialize_transfer(transfer)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsManagerRole])
def transfers(request):
    """Transfer history, newest first; ``staffId`` narrows to one employee."""
    qs = StaffTransfer.objects.select_related('employee', 'from_branch', 'to_branch').order_by('-transfer_date', '-id')
    staff_id = id_filters(request).get('staffId')
    if staff_id:
        qs = qs.filter(employee_id=staff_id)
    return Response({'ok': True, 'data': [serialize_transfer(t) for t in qs]})
