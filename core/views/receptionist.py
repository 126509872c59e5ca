"""
Front-desk endpoints under ``/api/receptionist``.

Everything is scoped to the receptionist's current branch.
"""
from __future__ import annotations

import datetime as dt

from django.db.models import Q
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import DomainError, NotFoundError
from core.models import Appointment, Pet, User
from core.permissions import IsReceptionistRole
from core.services import appointments as appointment_service
from core.services.staff import employees_at, require_branch
from core.views.appointments import book_from_payload
from core.views.branches import serialize_branch

SEARCH_LIMIT = 20


def _branch_appointments(branch):
    return Appointment.objects.select_related(*appointment_service.APPOINTMENT_RELATED).filter(branch=branch)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsReceptionistRole])
def today_appointments(request):
    branch = require_branch(request.user)
    qs = _branch_appointments(branch).filter(
        appointment_time__date=timezone.localdate()
    ).order_by('appointment_time')
    return Response({'ok': True, 'data': [appointment_service.serialize_appointment(a) for a in qs]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsReceptionistRole])
def branch_appointments(request):
    """Branch appointments, newest first; ``date`` (YYYY-MM-DD) narrows to a day."""
    branch = require_branch(request.user)
    qs = _branch_appointments(branch).order_by('-appointment_time')
    day = request.query_params.get('date')
    if day:
        try:
            qs = qs.filter(appointment_time__date=dt.date.fromisoformat(day))
        except ValueError:
            raise DomainError('date must be formatted as YYYY-MM-DD')
    return Response({'ok': True, 'data': [appointment_service.serialize_appointment(a) for a in qs]})


@api_view(['PUT', 'POST'])
@permission_classes([IsAuthenticated, IsReceptionistRole])
def checkin(request, appointment_id: int):
    branch = require_branch(request.user)
    appt = Appointment.objects.filter(id=appointment_id, branch=branch).first()
    if appt is None:
        raise NotFoundError('Appointment not found at your branch.')
    appt = appointment_service.transition(appt, Appointment.STATUS_CONFIRMED, operator=request.user,
                                          reason='checked in')
    return Response({'ok': True, 'message': 'Checked in', 'data': appointment_service.serialize_appointment(appt)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsReceptionistRole])
def search_customers(request):
    q = (request.query_params.get('q') or '').strip()
    if len(q) < 2:
        raise DomainError('Search query must be at least 2 characters.')
    qs = User.objects.filter(role=User.ROLE_CUSTOMER).filter(
        Q(first_name__icontains=q) | Q(last_name__icontains=q) | Q(username__icontains=q)
        | Q(phone__icontains=q) | Q(email__icontains=q)
    ).order_by('first_name', 'id')[:SEARCH_LIMIT]
    return Response({'ok': True, 'data': [{
        'id': u.id,
        'name': u.display_name,
        'phone': u.phone,
        'email': u.email,
        'membershipLevel': u.membership_level,
    } for u in qs]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsReceptionistRole])
def customer_pets(request, customer_id: int):
    if not User.objects.filter(id=customer_id, role=User.ROLE_CUSTOMER).exists():
        raise NotFoundError('Customer not found.')
    pets = Pet.objects.filter(owner_id=customer_id).order_by('name')
    return Response({'ok': True, 'data': [{
        'id': p.id,
        'name': p.name,
        'species': p.species,
        'breed': p.breed,
        'gender': p.gender,
        'dateOfBirth': p.date_of_birth.isoformat() if p.date_of_birth else None,
        'healthStatus': p.health_status,
    } for p in pets]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsReceptionistRole])
def available_doctors(request):
    branch = require_branch(request.user)
    doctors = employees_at(branch, User.ROLE_VET).select_related('employee_profile')
    return Response({'ok': True, 'data': [{
        'id': d.id,
        'name': d.display_name,
        'phone': d.phone,
        'specialization': getattr(getattr(d, 'employee_profile', None), 'specialization', ''),
    } for d in doctors]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsReceptionistRole])
def my_branch(request):
    return Response({'ok': True, 'data': serialize_branch(require_branch(request.user))})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsReceptionistRole])
def book_for_customer(request):
    data = request.data.copy()
    data.setdefault('branch_id', require_branch(request.user).id)
    appt = book_from_payload(request, data)
    return Response({'ok': True, 'data': appointment_service.serialize_appointment(appt)},
                    status=status.HTTP_201_CREATED)
