"""
Appointment booking and status transitions.

Allowed transitions::

    pending   -> confirmed | cancelled
    confirmed -> completed | cancelled

``completed`` and ``cancelled`` are final.  Every transition is stored
as an :class:`AppointmentTransition` row and announced on the realtime
``updates`` group once the transaction commits.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction
from django.utils import timezone

from core.exceptions import ConflictError, DomainError, InvalidTransitionError
from core.models import Appointment, AppointmentTransition, APPOINTMENT_SERVICE_CHOICES, User
from core.realtime.consumers import broadcast
from core.services.audit import log_action
from core.services.staff import current_branch_id

logger = logging.getLogger(__name__)

TRANSITIONS = {
    Appointment.STATUS_PENDING: [Appointment.STATUS_CONFIRMED, Appointment.STATUS_CANCELLED],
    Appointment.STATUS_CONFIRMED: [Appointment.STATUS_COMPLETED, Appointment.STATUS_CANCELLED],
    Appointment.STATUS_COMPLETED: [],
    Appointment.STATUS_CANCELLED: [],
}


def can_transition(current: str, new: str) -> bool:
    return new in TRANSITIONS.get(current, [])


def book_appointment(*, owner: User, pet, branch, appointment_time, service_type: str,
                     doctor: Optional[User] = None, reason: str = '',
                     operator: Optional[User] = None) -> Appointment:
    if pet.owner_id != owner.id:
        raise DomainError('This pet does not belong to the customer.')
    if service_type not in dict(APPOINTMENT_SERVICE_CHOICES):
        raise DomainError(f'Unknown service type: {service_type}')
    if appointment_time <= timezone.now():
        raise DomainError('Appointment time must be in the future.')
    with transaction.atomic():
        if doctor is not None:
            if doctor.role != User.ROLE_VET:
                raise DomainError('Selected employee is not a veterinarian.')
            if current_branch_id(doctor, on=timezone.localtime(appointment_time).date()) != branch.id:
                raise DomainError('Selected veterinarian does not work at this branch.')
            # lock the doctor row so two bookings for the same slot serialise
            User.objects.select_for_update().filter(pk=doctor.pk).first()
            clash = (
                Appointment.objects.filter(doctor=doctor, appointment_time=appointment_time)
                .exclude(status=Appointment.STATUS_CANCELLED)
                .exists()
            )
            if clash:
                raise ConflictError('The veterinarian already has an appointment at this time.')
        appt = Appointment.objects.create(
            owner=owner, pet=pet, branch=branch, doctor=doctor,
            appointment_time=appointment_time, service_type=service_type, reason=reason,
        )
        AppointmentTransition.objects.create(
            appointment=appt, from_status=None, to_status=appt.status,
            operator=operator or owner, reason='booked',
        )
        log_action(user=operator or owner, action='appointment_create', object_type='appointment',
                   object_id=appt.id, detail={'branch': branch.id, 'service_type': service_type})
        transaction.on_commit(lambda: _announce(appt))
    return appt


def transition(appointment: Appointment, new_status: str, *, operator: Optional[User],
               reason: str = '') -> Appointment:
    """Move an appointment to ``new_status`` under a row lock."""
    with transaction.atomic():
        locked = Appointment.objects.select_for_update().get(pk=appointment.pk)
        old_status = locked.status
        if not can_transition(old_status, new_status):
            logger.warning('refused appointment %s transition %s -> %s', locked.pk, old_status, new_status)
            raise InvalidTransitionError(f'Cannot change appointment from {old_status} to {new_status}.')
        locked.status = new_status
        fields = ['status', 'updated_at']
        if new_status == Appointment.STATUS_CANCELLED:
            locked.cancelled_reason = reason
            fields.append('cancelled_reason')
        locked.save(update_fields=fields)
        AppointmentTransition.objects.create(
            appointment=locked, from_status=old_status, to_status=new_status,
            operator=operator, reason=reason,
        )
        log_action(user=operator, action='appointment_transition', object_type='appointment',
                   object_id=locked.id, detail={'from': old_status, 'to': new_status})
        transaction.on_commit(lambda: _announce(locked))
    appointment.status = locked.status
    appointment.cancelled_reason = locked.cancelled_reason
    return locked


def cancel(appointment: Appointment, *, operator: Optional[User], reason: str = '') -> Appointment:
    return transition(appointment, Appointment.STATUS_CANCELLED, operator=operator, reason=reason)


def _announce(appt: Appointment) -> None:
    broadcast({
        'type': 'appointment.changed',
        'appointmentId': appt.id,
        'branchId': appt.branch_id,
        'status': appt.status,
    })


def serialize_appointment(a: Appointment) -> dict:
    return {
        'id': a.id,
        'ownerId': a.owner_id,
        'ownerName': a.owner.display_name,
        'ownerPhone': a.owner.phone,
        'petId': a.pet_id,
        'petName': a.pet.name,
        'species': a.pet.species,
        'branchId': a.branch_id,
        'branchName': a.branch.name,
        'doctorId': a.doctor_id,
        'doctorName': a.doctor.display_name if a.doctor_id else None,
        'serviceType': a.service_type,
        'appointmentTime': a.appointment_time.isoformat(),
        'status': a.status,
        'reason': a.reason,
        'cancelledReason': a.cancelled_reason,
        'createdAt': a.created_at.isoformat() if a.created_at else None,
    }


APPOINTMENT_RELATED = ('owner', 'pet', 'branch', 'doctor')
