import bleach
from rest_framework import serializers

from core.services.staff import EMPLOYEE_ROLES


class BranchSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    openingAt = serializers.TimeField(required=False, allow_null=True)
    closingAt = serializers.TimeField(required=False, allow_null=True)

    def validate_name(self, v):
        v = bleach.clean(v.strip(), strip=True)
        if not v:
            raise serializers.ValidationError('Branch name is required')
        return v

    def validate(self, attrs):
        opening, closing = attrs.get('openingAt'), attrs.get('closingAt')
        if opening and closing and opening >= closing:
            raise serializers.ValidationError({'closingAt': 'Closing time must be after opening time'})
        return attrs


class StaffCreateSerializer(serializers.Serializer):
    username = serializers.CharField(min_length=3, max_length=150)
    password = serializers.CharField(min_length=8, write_only=True)
    fullName = serializers.CharField(max_length=150)
    role = serializers.ChoiceField(choices=EMPLOYEE_ROLES)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    gender = serializers.CharField(max_length=10, required=False, allow_blank=True)
    dateOfBirth = serializers.DateField(required=False, allow_null=True)
    baseSalary = serializers.IntegerField(min_value=0, required=False, default=0)
    specialization = serializers.CharField(max_length=255, required=False, allow_blank=True)
    branchId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    startDate = serializers.DateField(required=False, allow_null=True)

    def validate_fullName(self, v):
        return bleach.clean(v.strip(), strip=True)


class TransferSerializer(serializers.Serializer):
    toBranchId = serializers.IntegerField(min_value=1)
    transferDate = serializers.DateField(required=False, allow_null=True)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True)

    def validate_reason(self, v):
        return bleach.clean((v or '').strip(), strip=True)

    def validate_notes(self, v):
        return bleach.clean((v or '').strip(), strip=True)
