import bleach
from rest_framework import serializers

from core.models import Invoice, Product, Promotion, SERVICE_TYPE_CHOICES

SORT_FIELDS = {'product_name': 'name', 'price': 'price', 'created_at': 'created_at'}


class ProductListQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=100, default=12)
    search = serializers.CharField(max_length=100, required=False, allow_blank=True)
    category = serializers.CharField(max_length=20, required=False, default='all')
    sortBy = serializers.CharField(required=False, default='product_name')
    sortOrder = serializers.CharField(required=False, default='ASC')

    def validate_sortBy(self, v):
        # unknown fields fall back to the default instead of failing
        return v if v in SORT_FIELDS else 'product_name'

    def validate_sortOrder(self, v):
        return 'DESC' if str(v).upper() == 'DESC' else 'ASC'


class ProductSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    category = serializers.ChoiceField(choices=[c[0] for c in Product.TYPE_CHOICES])
    price = serializers.IntegerField(min_value=0)
    description = serializers.CharField(required=False, allow_blank=True)

    def validate_name(self, v):
        return bleach.clean(v.strip(), strip=True)

    def validate_description(self, v):
        return bleach.clean((v or '').strip(), strip=True)


class OrderItemSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)


class OrderBuySerializer(serializers.Serializer):
    branch_id = serializers.IntegerField(min_value=1)
    payment_method = serializers.ChoiceField(choices=[c[0] for c in Invoice.PAYMENT_CHOICES])
    items = OrderItemSerializer(many=True, allow_empty=False)


class PromotionSerializer(serializers.Serializer):
    description = serializers.CharField(max_length=1000, allow_blank=True)
    targetAudience = serializers.ChoiceField(choices=[c[0] for c in Promotion.AUDIENCE_CHOICES],
                                             required=False, allow_blank=True)
    applicableServiceTypes = serializers.ListField(child=serializers.CharField(), allow_empty=True)
    discountRate = serializers.IntegerField()
    startDate = serializers.DateField()
    endDate = serializers.DateField()
    isActive = serializers.BooleanField(required=False, default=True)
    branchId = serializers.IntegerField(required=False, allow_null=True, min_value=1)

    def validate_description(self, v):
        return bleach.clean((v or '').strip(), strip=True)

    def to_model_fields(self) -> dict:
        vd = self.validated_data
        return {
            'description': vd['description'],
            'target_audience': vd.get('targetAudience') or '',
            'applicable_service_types': vd['applicableServiceTypes'],
            'discount_rate': vd['discountRate'],
            'start_date': vd['startDate'],
            'end_date': vd['endDate'],
            'is_active': vd.get('isActive', True),
        }


class QuoteLineSerializer(serializers.Serializer):
    serviceType = serializers.ChoiceField(choices=[c[0] for c in SERVICE_TYPE_CHOICES])
    basePrice = serializers.IntegerField(min_value=0)
    vaccineCost = serializers.IntegerField(min_value=0, required=False, default=0)
    packageCost = serializers.IntegerField(min_value=0, required=False, default=0)


class QuoteSerializer(serializers.Serializer):
    branch_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    services = QuoteLineSerializer(many=True, allow_empty=False)


class StockUpdateSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=0)


class StockAdjustSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    adjustment = serializers.IntegerField()

    def validate_adjustment(self, v):
        if v == 0:
            raise serializers.ValidationError('Adjustment cannot be zero')
        return v


class InvoiceRatingSerializer(serializers.Serializer):
    saleAttitudeRating = serializers.IntegerField(min_value=0, max_value=5, required=False)
    overallSatisfactionRating = serializers.IntegerField(min_value=0, max_value=5, required=False)


class ServiceRatingSerializer(serializers.Serializer):
    qualityRating = serializers.IntegerField(min_value=0, max_value=5, required=False)
    employeeAttitudeRating = serializers.IntegerField(min_value=0, max_value=5, required=False)
    comment = serializers.CharField(max_length=1000, required=False, allow_blank=True)

    def validate_comment(self, v):
        return bleach.clean((v or '').strip(), strip=True)
