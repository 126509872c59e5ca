"""
Pet lookup for clinic staff.
"""
from __future__ import annotations

from django.db.models import Max, Q
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import NotFoundError
from core.models import Appointment, Pet
from core.permissions import IsStaffRole
from core.serializers.clinic import PetListQuerySerializer
from core.services.doctors import pet_full_history

DEFAULT_PAGE_SIZE = 10


def _with_last_visit(qs):
    return qs.annotate(
        last_appointment_time=Max(
            'appointments__appointment_time',
            filter=Q(appointments__status=Appointment.STATUS_COMPLETED),
        )
    )


def _serialize(p: Pet) -> dict:
    last = getattr(p, 'last_appointment_time', None)
    return {
        'id': p.id,
        'name': p.name,
        'species': p.species,
        'breed': p.breed,
        'gender': p.gender,
        'dateOfBirth': p.date_of_birth.isoformat() if p.date_of_birth else None,
        'healthStatus': p.health_status,
        'weight': p.weight,
        'ownerId': p.owner_id,
        'ownerName': p.owner.display_name,
        'ownerPhone': p.owner.phone,
        'last_appointment_time': last.isoformat() if last else None,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def list_pets(request):
    q = PetListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    keyword = (q.validated_data.get('keyword') or '').strip()
    page = q.validated_data.get('page') or 1
    page_size = q.validated_data.get('pageSize') or DEFAULT_PAGE_SIZE
    qs = Pet.objects.select_related('owner')
    if keyword:
        qs = qs.filter(
            Q(name__icontains=keyword) | Q(owner__first_name__icontains=keyword)
            | Q(owner__last_name__icontains=keyword) | Q(owner__username__icontains=keyword)
        )
    total = qs.count()
    start = (page - 1) * page_size
    pets = _with_last_visit(qs).order_by('name', 'id')[start:start + page_size]
    return Response({
        'ok': True,
        'data': [_serialize(p) for p in pets],
        'meta': {'page': page, 'pageSize': page_size, 'total': total},
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def pet_detail(request, pet_id: int):
    pet = _with_last_visit(Pet.objects.select_related('owner')).filter(id=pet_id).first()
    if pet is None:
        raise NotFoundError('Pet not found.')
    data = _serialize(pet)
    data['history'] = pet_full_history(pet.id)
    return Response({'ok': True, 'data': data})
