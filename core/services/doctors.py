"""
Veterinarian workflows: the appointment book and clinical records.

Recording an examination or an injection creates the service instance,
bills it on a new invoice and writes the clinical record in a single
transaction.  Vaccine stock is taken from the doctor's current branch.
"""
from __future__ import annotations

import logging
from typing import Optional

from dateutil.relativedelta import relativedelta
from django.db import transaction
from django.utils import timezone

from core.exceptions import DomainError, NotFoundError
from core.models import (
    Appointment, MedicalExamination, Medicine, PackageInjection, Pet, Prescription,
    SingleInjection, User, Vaccine, VaccinePackage,
    SERVICE_MEDICAL_EXAM, SERVICE_SINGLE_VACCINE, SERVICE_VACCINE_PACKAGE,
)
from core.services import appointments as appointment_service
from core.services.inventory import deduct_stock
from core.services.invoicing import create_invoice
from core.services.staff import require_branch

logger = logging.getLogger(__name__)

OPEN_STATUSES = (Appointment.STATUS_PENDING, Appointment.STATUS_CONFIRMED)


def _pet_or_404(pet_id) -> Pet:
    pet = Pet.objects.select_related('owner').filter(id=pet_id).first()
    if pet is None:
        raise NotFoundError('Pet not found.')
    return pet


def _own_appointment(doctor: User, appointment_id) -> Appointment:
    appt = Appointment.objects.filter(id=appointment_id, doctor=doctor).first()
    if appt is None:
        raise NotFoundError("Appointment not found or you don't have permission to change it.")
    return appt


def today_appointments(doctor: User):
    today = timezone.localdate()
    return (
        Appointment.objects.select_related(*appointment_service.APPOINTMENT_RELATED)
        .filter(doctor=doctor, appointment_time__date=today)
        .order_by('appointment_time')
    )


def _pet_row(p: Pet) -> dict:
    return {
        'id': p.id,
        'name': p.name,
        'species': p.species,
        'breed': p.breed,
        'gender': p.gender,
        'dateOfBirth': p.date_of_birth.isoformat() if p.date_of_birth else None,
        'healthStatus': p.health_status,
        'ownerName': p.owner.display_name,
        'ownerPhone': p.owner.phone,
    }


def assigned_pets(doctor: User) -> list[dict]:
    pets = Pet.objects.select_related('owner').filter(appointments__doctor=doctor).distinct().order_by('name')
    return [_pet_row(p) for p in pets]


def pets_by_appointment_type(doctor: User, service_type: str) -> list[dict]:
    appts = (
        Appointment.objects.select_related('pet', 'pet__owner')
        .filter(doctor=doctor, service_type=service_type, status__in=OPEN_STATUSES)
        .order_by('pet__name', 'appointment_time')
    )
    return [
        {**_pet_row(a.pet), 'appointmentId': a.id, 'appointmentStatus': a.status}
        for a in appts
    ]


def pending_appointments_count(doctor: User) -> int:
    return Appointment.objects.filter(doctor=doctor, status=Appointment.STATUS_PENDING).count()


def confirm_appointment(doctor: User, appointment_id) -> Appointment:
    appt = _own_appointment(doctor, appointment_id)
    return appointment_service.transition(appt, Appointment.STATUS_CONFIRMED, operator=doctor)


def cancel_appointment(doctor: User, appointment_id, reason: str) -> Appointment:
    appt = _own_appointment(doctor, appointment_id)
    return appointment_service.cancel(appt, operator=doctor, reason=reason)


def create_exam_record(doctor: User, data: dict, prescriptions: Optional[list[dict]] = None) -> dict:
    """Record an examination with its prescriptions and bill it.

    ``data`` carries ``pet_id``, ``diagnosis``, ``conclusion`` and the
    optional vitals; ``appointment_id`` completes that appointment.
    """
    branch = require_branch(doctor)
    pet = _pet_or_404(data['pet_id'])
    prescriptions = prescriptions or []
    medicines = {m.id: m for m in Medicine.objects.filter(id__in=[p['medicine_id'] for p in prescriptions])}
    missing = [p['medicine_id'] for p in prescriptions if p['medicine_id'] not in medicines]
    if missing:
        raise NotFoundError(f'Medicine not found: {missing[0]}')
    appt = None
    if data.get('appointment_id'):
        appt = _own_appointment(doctor, data['appointment_id'])
        if appt.pet_id != pet.id:
            raise DomainError('Appointment belongs to a different pet.')
    price = int(data.get('price') or 0) + sum(medicines[p['medicine_id']].price * p['quantity'] for p in prescriptions)
    with transaction.atomic():
        invoice, services, _ = create_invoice(
            customer=pet.owner, branch=branch, created_by=doctor,
            lines=[{'service_type': SERVICE_MEDICAL_EXAM, 'unit_price': price}],
        )
        exam = MedicalExamination.objects.create(
            service=services[0],
            pet=pet,
            doctor=doctor,
            appointment=appt,
            symptoms=data.get('symptoms', ''),
            diagnosis=data.get('diagnosis', ''),
            conclusion=data.get('conclusion', ''),
            appointment_date=data.get('appointment_date') or (appt.appointment_time if appt else timezone.now()),
            weight=data.get('weight'),
            temperature=data.get('temperature'),
            blood_pressure=data.get('blood_pressure', ''),
            follow_up_date=data.get('follow_up_date'),
        )
        for p in prescriptions:
            Prescription.objects.create(
                examination=exam,
                medicine=medicines[p['medicine_id']],
                quantity=p['quantity'],
                dosage=p.get('dosage', ''),
                duration=p.get('duration', ''),
                instructions=p.get('instructions', ''),
            )
        if data.get('weight'):
            pet.weight = data['weight']
            pet.save(update_fields=['weight'])
        if appt is not None:
            if appt.status == Appointment.STATUS_PENDING:
                appointment_service.transition(appt, Appointment.STATUS_CONFIRMED, operator=doctor)
            appointment_service.transition(appt, Appointment.STATUS_COMPLETED, operator=doctor,
                                           reason='examination recorded')
    return {
        'service_id': services[0].id,
        'invoice_id': invoice.id,
        'examination_id': exam.id,
        'prescriptions_count': len(prescriptions),
        'final_amount': invoice.final_amount,
    }


def create_single_injection(doctor: User, pet_id, vaccine_id, dosage: int = 1) -> dict:
    branch = require_branch(doctor)
    pet = _pet_or_404(pet_id)
    vaccine = Vaccine.objects.filter(id=vaccine_id).first()
    if vaccine is None:
        raise NotFoundError('Vaccine not found.')
    with transaction.atomic():
        deduct_stock('vaccine', branch, vaccine, 1, message='Insufficient vaccine stock.')
        invoice, services, _ = create_invoice(
            customer=pet.owner, branch=branch, created_by=doctor,
            lines=[{'service_type': SERVICE_SINGLE_VACCINE, 'unit_price': vaccine.price}],
        )
        injection = SingleInjection.objects.create(
            service=services[0], pet=pet, doctor=doctor, vaccine=vaccine, dosage=dosage,
        )
    logger.info('single injection %s: pet %s vaccine %s at branch %s', injection.id, pet.id, vaccine.id, branch.id)
    return {
        'success': True,
        'message': 'Single injection recorded successfully',
        'service_id': services[0].id,
        'invoice_id': invoice.id,
        'injection_id': injection.id,
        'final_amount': invoice.final_amount,
    }


def create_package_injection(doctor: User, pet_id, package_id, cycle_stage: Optional[int] = None) -> dict:
    branch = require_branch(doctor)
    pet = _pet_or_404(pet_id)
    package = VaccinePackage.objects.filter(id=package_id).first()
    if package is None:
        raise NotFoundError('Package not found.')
    number = cycle_stage or 1
    is_last = number >= package.cycle
    with transaction.atomic():
        invoice, services, _ = create_invoice(
            customer=pet.owner, branch=branch, created_by=doctor,
            lines=[{'service_type': SERVICE_VACCINE_PACKAGE, 'unit_price': package.price}],
        )
        injection = PackageInjection.objects.create(
            service=services[0],
            pet=pet,
            doctor=doctor,
            package=package,
            injection_number=number,
            next_injection_date=None if is_last else timezone.localdate() + relativedelta(months=1),
            is_completed=False,
        )
    return {
        'success': True,
        'message': 'Package injection recorded successfully',
        'service_id': services[0].id,
        'invoice_id': invoice.id,
        'injection_id': injection.id,
        'injection_number': number,
        'next_injection_date': injection.next_injection_date.isoformat() if injection.next_injection_date else None,
        'final_amount': invoice.final_amount,
    }


def medical_records_by_pet(pet_id) -> list[dict]:
    exams = (
        MedicalExamination.objects.select_related('doctor', 'pet')
        .prefetch_related('prescriptions__medicine')
        .filter(pet_id=pet_id).order_by('-created_at')
    )
    return [{
        'id': e.service_id,
        'petName': e.pet.name,
        'doctorName': e.doctor.display_name if e.doctor_id else 'Unknown',
        'symptoms': e.symptoms,
        'diagnosis': e.diagnosis,
        'conclusion': e.conclusion,
        'weight': e.weight,
        'temperature': e.temperature,
        'bloodPressure': e.blood_pressure,
        'appointmentDate': e.appointment_date.isoformat() if e.appointment_date else None,
        'followUpDate': e.follow_up_date.isoformat() if e.follow_up_date else None,
        'createdAt': e.created_at.isoformat(),
        'prescription': [{
            'drugName': p.medicine.name,
            'quantity': p.quantity,
            'dosage': p.dosage,
            'duration': p.duration,
            'instructions': p.instructions,
        } for p in e.prescriptions.all()],
    } for e in exams]


def pet_full_history(pet_id) -> list[dict]:
    """Examinations and injections of a pet merged, newest first."""
    doctor_name = lambda u: u.display_name if u else 'Unknown'  # noqa: E731
    history: list[dict] = []
    for e in MedicalExamination.objects.select_related('doctor').filter(pet_id=pet_id):
        history.append({
            'type': 'examination', 'id': e.service_id, 'description': e.diagnosis,
            'conclusion': e.conclusion, 'createdAt': e.created_at, 'doctorName': doctor_name(e.doctor),
            'vaccineName': None, 'dosage': None,
        })
    for s in SingleInjection.objects.select_related('doctor', 'vaccine').filter(pet_id=pet_id):
        history.append({
            'type': 'single_injection', 'id': s.service_id, 'description': s.vaccine.name,
            'conclusion': None, 'createdAt': s.created_at, 'doctorName': doctor_name(s.doctor),
            'vaccineName': s.vaccine.name, 'dosage': str(s.dosage),
        })
    for p in PackageInjection.objects.select_related('doctor', 'package').filter(pet_id=pet_id):
        history.append({
            'type': 'package_injection', 'id': p.service_id, 'description': p.package.name,
            'conclusion': None, 'createdAt': p.created_at, 'doctorName': doctor_name(p.doctor),
            'vaccineName': p.package.name, 'dosage': None,
            'injectionNumber': p.injection_number,
        })
    history.sort(key=lambda h: h['createdAt'], reverse=True)
    for h in history:
        h['createdAt'] = h['createdAt'].isoformat()
    return history


def medicines() -> list[dict]:
    return [
        {'id': m.id, 'name': m.name, 'description': m.description, 'price': m.price}
        for m in Medicine.objects.order_by('name')
    ]
