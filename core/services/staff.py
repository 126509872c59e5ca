"""
Employee accounts, branch assignments and transfers.
"""
from __future__ import annotations

import datetime as dt
import logging
from typing import Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from core.exceptions import ConflictError, DomainError, NotFoundError
from core.models import Branch, EmployeeProfile, Mobilization, StaffTransfer, User
from core.services.audit import log_action

logger = logging.getLogger(__name__)

EMPLOYEE_ROLES = [User.ROLE_RECEPTIONIST, User.ROLE_VET, User.ROLE_SALES, User.ROLE_MANAGER]


def active_mobilizations(on: Optional[dt.date] = None):
    on = on or timezone.localdate()
    return Mobilization.objects.filter(
        Q(end_date__isnull=True) | Q(end_date__gte=on),
        start_date__lte=on,
    )


def current_mobilization(user: User, on: Optional[dt.date] = None) -> Optional[Mobilization]:
    return (
        active_mobilizations(on).filter(employee=user)
        .select_related('branch').order_by('-start_date', '-id').first()
    )


def current_branch_id(user: User, on: Optional[dt.date] = None) -> Optional[int]:
    m = current_mobilization(user, on)
    return m.branch_id if m else None


def current_branch(user: User) -> Optional[Branch]:
    m = current_mobilization(user)
    return m.branch if m else None


def require_branch(user: User) -> Branch:
    """The caller's branch or a 404 when they are not assigned anywhere."""
    branch = current_branch(user)
    if branch is None:
        raise NotFoundError('No active branch assignment for this employee.')
    return branch


def employees_at(branch: Branch, role: Optional[str] = None):
    ids = active_mobilizations().filter(branch=branch).values_list('employee_id', flat=True)
    qs = User.objects.filter(id__in=ids, is_active=True)
    if role:
        qs = qs.filter(role=role)
    return qs.order_by('first_name', 'username')


@transaction.atomic
def create_employee(*, username: str, password: str, full_name: str, role: str, email: str = '',
                    phone: str = '', gender: str = '', date_of_birth=None, base_salary: int = 0,
                    specialization: str = '', branch: Optional[Branch] = None,
                    start_date: Optional[dt.date] = None, created_by: Optional[User] = None) -> User:
    if role not in EMPLOYEE_ROLES:
        raise DomainError(f'Invalid employee role: {role}')
    if User.objects.filter(username=username).exists():
        raise ConflictError('Username already exists.')
    if email and User.objects.filter(email__iexact=email).exists():
        raise ConflictError('Email already exists.')
    user = User.objects.create_user(
        username=username, password=password, email=email, first_name=full_name,
        role=role, phone=phone, gender=gender, date_of_birth=date_of_birth,
    )
    EmployeeProfile.objects.create(
        user=user, base_salary=base_salary, specialization=specialization,
        hired_at=start_date or timezone.localdate(),
    )
    if branch is not None:
        Mobilization.objects.create(employee=user, branch=branch, start_date=start_date or timezone.localdate())
    log_action(user=created_by, action='staff_create', object_type='user', object_id=user.id,
               detail={'role': role, 'branch': getattr(branch, 'id', None)})
    return user


@transaction.atomic
def transfer_employee(employee: User, to_branch: Branch, *, transfer_date: Optional[dt.date] = None,
                      reason: str = '', notes: str = '', approved_by: Optional[User] = None) -> StaffTransfer:
    """Close the current assignment the day before ``transfer_date`` and open a new one."""
    if employee.role not in EMPLOYEE_ROLES:
        raise DomainError('Only employees can be transferred.')
    transfer_date = transfer_date or timezone.localdate()
    User.objects.select_for_update().filter(pk=employee.pk).first()
    current = current_mobilization(employee, on=transfer_date)
    if current is not None and current.branch_id == to_branch.id:
        raise DomainError('Employee already works at this branch.')
    if current is not None:
        current.end_date = transfer_date - dt.timedelta(days=1)
        if current.end_date < current.start_date:
            current.end_date = current.start_date
        current.save(update_fields=['end_date'])
    Mobilization.objects.create(employee=employee, branch=to_branch, start_date=transfer_date)
    transfer = StaffTransfer.objects.create(
        employee=employee,
        from_branch=current.branch if current else None,
        to_branch=to_branch,
        transfer_date=transfer_date,
        reason=reason,
        notes=notes,
        approved_by=approved_by,
    )
    log_action(user=approved_by, action='staff_transfer', object_type='user', object_id=employee.id,
               detail={'from': transfer.from_branch_id, 'to': to_branch.id, 'date': transfer_date.isoformat()})
    logger.info('employee %s transferred %s -> %s from %s',
                employee.pk, transfer.from_branch_id, to_branch.id, transfer_date)
    return transfer


def serialize_employee(u: User) -> dict:
    m = current_mobilization(u)
    profile = getattr(u, 'employee_profile', None)
    return {
        'id': u.id,
        'username': u.username,
        'fullName': u.display_name,
        'email': u.email,
        'phone': u.phone,
        'role': u.role,
        'gender': u.gender,
        'dateOfBirth': u.date_of_birth.isoformat() if u.date_of_birth else None,
        'baseSalary': profile.base_salary if profile else 0,
        'specialization': profile.specialization if profile else '',
        'branchId': m.branch_id if m else None,
        'branchName': m.branch.name if m else None,
        'isActive': u.is_active,
    }


def serialize_transfer(t: StaffTransfer) -> dict:
    return {
        'id': t.id,
        'staffId': t.employee_id,
        'staffName': t.employee.display_name,
        'fromBranchId': t.from_branch_id,
        'fromBranchName': t.from_branch.name if t.from_branch_id else None,
        'toBranchId': t.to_branch_id,
        'toBranchName': t.to_branch.name,
        'transferDate': t.transfer_date.isoformat(),
        'reason': t.reason,
        'notes': t.notes,
        'approvedBy': t.approved_by_id,
        'createdAt': t.created_at.isoformat(),
    }
