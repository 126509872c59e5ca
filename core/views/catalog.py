from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import NotFoundError
from core.models import Branch, User, Vaccine, VaccinePackage
from core.serializers.clinic import id_filters
from core.services.staff import employees_at, serialize_employee


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def doctors(request):
    """Veterinarians, optionally only those working at ``branchId``."""
    branch_id = id_filters(request).get('branchId')
    if branch_id:
        branch = Branch.objects.filter(id=branch_id).first()
        if branch is None:
            raise NotFoundError('Branch not found.')
        qs = employees_at(branch, User.ROLE_VET)
    else:
        qs = User.objects.filter(role=User.ROLE_VET, is_active=True).order_by('first_name', 'username')
    qs = qs.select_related('employee_profile')
    data = []
    for d in qs:
        e = serialize_employee(d)
        data.append({k: e[k] for k in ('id', 'fullName', 'phone', 'specialization', 'branchId', 'branchName')})
    return Response({'ok': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def vaccines(request):
    return Response({'ok': True, 'data': [{
        'id': v.id,
        'name': v.name,
        'price': v.price,
        'manufacturer': v.manufacturer,
        'description': v.description,
    } for v in Vaccine.objects.order_by('name')]})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def vaccine_packages(request):
    qs = VaccinePackage.objects.prefetch_related('included__vaccine').order_by('name')
    return Response({'ok': True, 'data': [{
        'id': p.id,
        'name': p.name,
        'price': p.price,
        'cycle': p.cycle,
        'monthlyMilestone': p.monthly_milestone,
        'description': p.description,
        'vaccines': [
            {'vaccineId': iv.vaccine_id, 'vaccineName': iv.vaccine.name, 'dosage': iv.dosage}
            for iv in p.included.all()
        ],
    } for p in qs]})
