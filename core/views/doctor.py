"""
Veterinarian endpoints under ``/api/doctor``.

Covers the doctor's appointment book, the pets assigned to them,
clinical recording (examinations, single and package injections) and
the vaccine stock of the branch they currently work at.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import DomainError, NotFoundError
from core.models import APPOINTMENT_SERVICE_CHOICES, Pet
from core.permissions import IsVetRole
from core.serializers.clinic import (
    CancelSerializer, ExamRecordSerializer, PackageInjectionSerializer, SingleInjectionSerializer,
)
from core.services import doctors as doctor_service
from core.services.appointments import serialize_appointment
from core.services.inventory import branch_package_stock, branch_vaccine_stock
from core.services.staff import require_branch


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsVetRole])
def today_appointments(request):
    qs = doctor_service.today_appointments(request.user)
    return Response({'ok': True, 'data': [serialize_appointment(a) for a in qs]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsVetRole])
def assigned_pets(request):
    return Response({'ok': True, 'data': doctor_service.assigned_pets(request.user)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsVetRole])
def pets_by_type(request):
    """Pets with an open appointment of ``type`` for this doctor."""
    service_type = request.query_params.get('type') or request.query_params.get('serviceType')
    allowed = [c[0] for c in APPOINTMENT_SERVICE_CHOICES]
    if service_type not in allowed:
        raise DomainError(f'type must be one of: {", ".join(allowed)}')
    return Response({'ok': True, 'data': doctor_service.pets_by_appointment_type(request.user, service_type)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsVetRole])
def pending_count(request):
    return Response({'ok': True, 'count': doctor_service.pending_appointments_count(request.user)})


@api_view(['PUT', 'POST'])
@permission_classes([IsAuthenticated, IsVetRole])
def confirm_appointment(request, appointment_id: int):
    appt = doctor_service.confirm_appointment(request.user, appointment_id)
    return Response({'ok': True, 'data': serialize_appointment(appt)})


@api_view(['PUT', 'POST'])
@permission_classes([IsAuthenticated, IsVetRole])
def cancel_appointment(request, appointment_id: int):
    s = CancelSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = doctor_service.cancel_appointment(request.user, appointment_id, s.validated_data.get('reason', ''))
    return Response({'ok': True, 'data': serialize_appointment(appt)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsVetRole])
def exam_records(request):
    s = ExamRecordSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = dict(s.validated_data)
    prescriptions = [dict(p) for p in data.pop('prescriptions', [])]
    result = doctor_service.create_exam_record(request.user, data, prescriptions)
    return Response({'ok': True, 'message': 'Examination recorded successfully', 'data': result},
                    status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsVetRole])
def single_injection(request):
    s = SingleInjectionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    result = doctor_service.create_single_injection(request.user, v['pet_id'], v['vaccine_id'], v.get('dosage') or 1)
    return Response(result, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsVetRole])
def package_injection(request):
    s = PackageInjectionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    result = doctor_service.create_package_injection(request.user, v['pet_id'], v['package_id'], v.get('cycle_stage'))
    return Response(result, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsVetRole])
def vaccine_inventory(request):
    branch = require_branch(request.user)
    return Response({'ok': True, 'branchId': branch.id, 'data': branch_vaccine_stock(branch)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsVetRole])
def package_inventory(request):
    branch = require_branch(request.user)
    return Response({'ok': True, 'branchId': branch.id, 'data': branch_package_stock(branch)})


def _pet_exists(pet_id: int) -> None:
    if not Pet.objects.filter(id=pet_id).exists():
        raise NotFoundError('Pet not found.')


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsVetRole])
def medical_records(request, pet_id: int):
    _pet_exists(pet_id)
    return Response({'ok': True, 'data': doctor_service.medical_records_by_pet(pet_id)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsVetRole])
def pet_history(request, pet_id: int):
    _pet_exists(pet_id)
    return Response({'ok': True, 'data': doctor_service.pet_full_history(pet_id)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsVetRole])
def medicines(request):
    return Response({'ok': True, 'data': doctor_service.medicines()})
