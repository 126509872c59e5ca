from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.permissions import IsCustomerRole
from core.serializers.commerce import OrderBuySerializer
from core.services.orders import buy


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCustomerRole])
def order_buy(request):
    s = OrderBuySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    result = buy(request.user, v['branch_id'], v['items'], v['payment_method'])
    return Response({'ok': True, 'message': 'Order placed successfully', 'data': result},
                    status=status.HTTP_201_CREATED)
