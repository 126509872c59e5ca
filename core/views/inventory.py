from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import NotFoundError
from core.models import Branch
from core.permissions import IsManagerRole, IsStaffRole, MANAGER_ROLES
from core.serializers.clinic import id_filters
from core.services.inventory import branch_inventory_summary, get_stock_alerts
from core.services.staff import require_branch


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsManagerRole])
def branch_inventory(request):
    return Response({'ok': True, 'data': branch_inventory_summary()})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def stock_alerts(request):
    """Managers may pick any ``branchId``; other staff see their own branch."""
    if request.user.role in MANAGER_ROLES:
        branch = None
        branch_id = id_filters(request).get('branchId')
        if branch_id:
            branch = Branch.objects.filter(id=branch_id).first()
            if branch is None:
                raise NotFoundError('Branch not found.')
    else:
        branch = require_branch(request.user)
    return Response({'ok': True, 'data': get_stock_alerts(branch)})
