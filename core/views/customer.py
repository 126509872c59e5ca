"""
Customer self-service endpoints under ``/api/user``.

Customers manage their own pets and profile, review their appointments
and orders, check their membership tier and rate the services they were
billed for.  ``/api/me/...`` is served by the same views.
"""
from __future__ import annotations

from django.db import transaction
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.auth_views import serialize_user
from core.exceptions import ConflictError, NotFoundError
from core.models import Appointment, Invoice, Pet, Service
from core.permissions import IsCustomerRole
from core.serializers.auth import ProfileUpdateSerializer
from core.serializers.clinic import PetSerializer
from core.serializers.commerce import InvoiceRatingSerializer, ServiceRatingSerializer
from core.services import appointments as appointment_service
from core.services.audit import log_action
from core.services.doctors import pet_full_history
from core.services.invoicing import rate_invoice, rate_service
from core.services.membership import get_next_level_requirement, loyalty_points, yearly_spending
from core.services.orders import customer_orders


def _serialize_pet(p: Pet) -> dict:
    return {
        'id': p.id,
        'name': p.name,
        'species': p.species,
        'breed': p.breed,
        'dateOfBirth': p.date_of_birth.isoformat() if p.date_of_birth else None,
        'gender': p.gender,
        'healthStatus': p.health_status,
        'weight': p.weight,
        'color': p.color,
        'createdAt': p.created_at.isoformat() if p.created_at else None,
    }


PET_FIELDS = {
    'name': 'name',
    'species': 'species',
    'breed': 'breed',
    'dateOfBirth': 'date_of_birth',
    'gender': 'gender',
    'healthStatus': 'health_status',
    'weight': 'weight',
    'color': 'color',
}


def _own_pet(user, pet_id) -> Pet:
    pet = Pet.objects.filter(id=pet_id, owner=user).first()
    if pet is None:
        raise NotFoundError('Pet not found.')
    return pet


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsCustomerRole])
def my_pets(request):
    if request.method == 'GET':
        pets = Pet.objects.filter(owner=request.user).order_by('name', 'id')
        return Response({'ok': True, 'data': [_serialize_pet(p) for p in pets]})
    s = PetSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    fields = {model_field: s.validated_data[key] for key, model_field in PET_FIELDS.items()
              if key in s.validated_data}
    pet = Pet.objects.create(owner=request.user, **fields)
    log_action(user=request.user, action='pet_create', object_type='pet', object_id=pet.id)
    return Response({'ok': True, 'data': _serialize_pet(pet)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsCustomerRole])
def my_pet_detail(request, pet_id: int):
    pet = _own_pet(request.user, pet_id)
    if request.method == 'GET':
        return Response({'ok': True, 'data': _serialize_pet(pet)})
    if request.method == 'DELETE':
        open_appointments = pet.appointments.filter(
            status__in=(Appointment.STATUS_PENDING, Appointment.STATUS_CONFIRMED)
        ).exists()
        if open_appointments:
            raise ConflictError('This pet still has upcoming appointments.')
        if pet.examinations.exists() or pet.single_injections.exists() or pet.package_injections.exists():
            raise ConflictError('Pets with medical history cannot be deleted.')
        log_action(user=request.user, action='pet_delete', object_type='pet', object_id=pet.id)
        pet.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
    s = PetSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    changed = []
    for key, model_field in PET_FIELDS.items():
        if key in s.validated_data:
            setattr(pet, model_field, s.validated_data[key])
            changed.append(model_field)
    if changed:
        pet.save(update_fields=changed)
    return Response({'ok': True, 'data': _serialize_pet(pet)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCustomerRole])
def my_pet_history(request, pet_id: int):
    pet = _own_pet(request.user, pet_id)
    return Response({'ok': True, 'data': pet_full_history(pet.id)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCustomerRole])
def my_appointments(request):
    """Own appointments, newest first; ``status`` narrows the list."""
    qs = (
        Appointment.objects.select_related(*appointment_service.APPOINTMENT_RELATED)
        .filter(owner=request.user).order_by('-appointment_time')
    )
    wanted = request.query_params.get('status')
    if wanted:
        qs = qs.filter(status=wanted)
    return Response({'ok': True, 'data': [appointment_service.serialize_appointment(a) for a in qs]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCustomerRole])
def my_orders(request):
    return Response({'ok': True, 'data': customer_orders(request.user)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCustomerRole])
def my_membership(request):
    user = request.user
    spending = yearly_spending(user)
    return Response({
        'ok': True,
        'data': {
            'level': user.membership_level,
            'yearlySpending': spending,
            'loyaltyPoints': loyalty_points(spending),
            'next': get_next_level_requirement(user.membership_level, spending),
        },
    })


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def my_profile(request):
    """Any signed-in account may read and edit its own profile."""
    user = request.user
    if request.method == 'GET':
        return Response({'ok': True, 'data': serialize_user(user)})
    s = ProfileUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    mapping = {
        'fullName': 'first_name',
        'phone': 'phone',
        'gender': 'gender',
        'dateOfBirth': 'date_of_birth',
        'citizenId': 'citizen_id',
    }
    changed = [field for key, field in mapping.items() if key in v]
    with transaction.atomic():
        for key, field in mapping.items():
            if key in v:
                setattr(user, field, v[key])
        if changed:
            user.save(update_fields=changed)
        log_action(user=user, action='profile_update', object_type='user', object_id=user.id,
                   detail={'fields': changed})
    return Response({'ok': True, 'data': serialize_user(user)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCustomerRole])
def rate_my_invoice(request, invoice_id: int):
    invoice = Invoice.objects.filter(id=invoice_id, customer=request.user).first()
    if invoice is None:
        raise NotFoundError('Invoice not found.')
    s = InvoiceRatingSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    rate_invoice(
        invoice, request.user,
        sale_attitude=s.validated_data.get('saleAttitudeRating'),
        overall=s.validated_data.get('overallSatisfactionRating'),
    )
    return Response({
        'ok': True,
        'saleAttitudeRating': invoice.sale_attitude_rating,
        'overallSatisfactionRating': invoice.overall_satisfaction_rating,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCustomerRole])
def rate_my_service(request, service_id: int):
    service = Service.objects.select_related('invoice').filter(id=service_id, invoice__customer=request.user).first()
    if service is None:
        raise NotFoundError('Service not found.')
    s = ServiceRatingSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    rate_service(
        service, request.user,
        quality=s.validated_data.get('qualityRating'),
        attitude=s.validated_data.get('employeeAttitudeRating'),
        comment=s.validated_data.get('comment'),
    )
    return Response({
        'ok': True,
        'qualityRating': service.quality_rating,
        'employeeAttitudeRating': service.employee_attitude_rating,
        'comment': service.comment,
    })
