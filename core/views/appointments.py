"""
Appointment booking shared by customers and front-desk staff.

Customers book for their own pets.  Staff may book on behalf of a
customer by passing ``customer_id``.  Listing is scoped by role:
customers see their own appointments, veterinarians those assigned to
them, other staff those of their current branch (managers see all).
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import DomainError, NotFoundError
from core.models import Appointment, Branch, Pet, User
from core.permissions import MANAGER_ROLES, STAFF_ROLES
from core.serializers.clinic import AppointmentCreateSerializer, CancelSerializer
from core.services import appointments as appointment_service
from core.services.staff import current_branch_id


def _scoped_queryset(user: User):
    qs = Appointment.objects.select_related(*appointment_service.APPOINTMENT_RELATED)
    if user.role == User.ROLE_CUSTOMER:
        return qs.filter(owner=user)
    if user.role == User.ROLE_VET:
        return qs.filter(doctor=user)
    if user.role in MANAGER_ROLES:
        return qs
    branch_id = current_branch_id(user)
    return qs.filter(branch_id=branch_id) if branch_id else qs.none()


def book_from_payload(request, data) -> Appointment:
    """Validate an appointment payload and book it for the right customer."""
    s = AppointmentCreateSerializer(data=data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    user = request.user
    if user.role == User.ROLE_CUSTOMER:
        owner = user
    else:
        if not v.get('customer_id'):
            raise DomainError('customer_id is required when booking for a customer.')
        owner = User.objects.filter(id=v['customer_id'], role=User.ROLE_CUSTOMER).first()
        if owner is None:
            raise NotFoundError('Customer not found.')
    pet = Pet.objects.filter(id=v['pet_id']).first()
    if pet is None:
        raise NotFoundError('Pet not found.')
    branch = Branch.objects.filter(id=v['branch_id']).first()
    if branch is None:
        raise NotFoundError('Branch not found.')
    doctor = None
    if v.get('doctor_id'):
        doctor = User.objects.filter(id=v['doctor_id'], role=User.ROLE_VET, is_active=True).first()
        if doctor is None:
            raise NotFoundError('Veterinarian not found.')
    return appointment_service.book_appointment(
        owner=owner, pet=pet, branch=branch, doctor=doctor,
        appointment_time=v['appointment_time'], service_type=v['service_type'],
        reason=v.get('reason', ''), operator=user,
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def appointments(request):
    if request.method == 'POST':
        if request.user.role not in STAFF_ROLES and request.user.role != User.ROLE_CUSTOMER:
            raise PermissionDenied('forbidden')
        appt = book_from_payload(request, request.data)
        return Response({'ok': True, 'data': appointment_service.serialize_appointment(appt)},
                        status=status.HTTP_201_CREATED)
    qs = _scoped_queryset(request.user).order_by('-appointment_time')
    wanted = request.query_params.get('status')
    if wanted:
        qs = qs.filter(status=wanted)
    return Response({'ok': True, 'data': [appointment_service.serialize_appointment(a) for a in qs]})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def appointment_detail(request, appointment_id: int):
    appt = _scoped_queryset(request.user).filter(id=appointment_id).first()
    if appt is None:
        raise NotFoundError('Appointment not found.')
    data = appointment_service.serialize_appointment(appt)
    data['history'] = [
        {
            'from': t.from_status,
            'to': t.to_status,
            'operatorId': t.operator_id,
            'reason': t.reason,
            'timestamp': t.timestamp.isoformat(),
        }
        for t in appt.transitions.order_by('timestamp', 'id')
    ]
    return Response({'ok': True, 'data': data})


@api_view(['POST', 'PUT'])
@permission_classes([IsAuthenticated])
def appointment_cancel(request, appointment_id: int):
    appt = _scoped_queryset(request.user).filter(id=appointment_id).first()
    if appt is None:
        raise NotFoundError('Appointment not found.')
    s = CancelSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = appointment_service.cancel(appt, operator=request.user, reason=s.validated_data.get('reason', ''))
    return Response({'ok': True, 'data': appointment_service.serialize_appointment(appt)})
