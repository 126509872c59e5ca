import bleach
from rest_framework import serializers

from core.models import APPOINTMENT_SERVICE_CHOICES, Pet


def _clean(v):
    return bleach.clean((v or '').strip(), strip=True)


class PetSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    species = serializers.CharField(max_length=50)
    breed = serializers.CharField(max_length=100, required=False, allow_blank=True)
    dateOfBirth = serializers.DateField(required=False, allow_null=True)
    gender = serializers.ChoiceField(choices=[c[0] for c in Pet.GENDER_CHOICES], required=False)
    healthStatus = serializers.CharField(max_length=100, required=False, allow_blank=True)
    weight = serializers.FloatField(required=False, allow_null=True, min_value=0)
    color = serializers.CharField(max_length=50, required=False, allow_blank=True)

    def validate_name(self, v):
        v = _clean(v)
        if not v:
            raise serializers.ValidationError('Pet name is required')
        return v


class PetListQuerySerializer(serializers.Serializer):
    keyword = serializers.CharField(max_length=64, required=False, allow_blank=True)
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=100)


class IdFilterSerializer(serializers.Serializer):
    """Numeric id filters on list endpoints; both spellings of the branch id are accepted."""
    branchId = serializers.IntegerField(required=False, min_value=1)
    branch_id = serializers.IntegerField(required=False, min_value=1)
    staffId = serializers.IntegerField(required=False, min_value=1)

    def validate(self, attrs):
        if attrs.get('branchId') is None and attrs.get('branch_id') is not None:
            attrs['branchId'] = attrs['branch_id']
        return attrs


def id_filters(request) -> dict:
    s = IdFilterSerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    return s.validated_data


class AppointmentCreateSerializer(serializers.Serializer):
    pet_id = serializers.IntegerField(min_value=1)
    branch_id = serializers.IntegerField(min_value=1)
    doctor_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    customer_id = serializers.IntegerField(min_value=1, required=False)
    appointment_time = serializers.DateTimeField()
    service_type = serializers.ChoiceField(choices=[c[0] for c in APPOINTMENT_SERVICE_CHOICES])
    reason = serializers.CharField(max_length=1000, required=False, allow_blank=True)

    def validate_reason(self, v):
        return _clean(v)


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def validate_reason(self, v):
        return _clean(v)


class PrescriptionSerializer(serializers.Serializer):
    medicine_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)
    dosage = serializers.CharField(max_length=100, required=False, allow_blank=True)
    duration = serializers.CharField(max_length=100, required=False, allow_blank=True)
    instructions = serializers.CharField(max_length=1000, required=False, allow_blank=True)


class ExamRecordSerializer(serializers.Serializer):
    pet_id = serializers.IntegerField(min_value=1)
    appointment_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    symptoms = serializers.CharField(required=False, allow_blank=True)
    diagnosis = serializers.CharField()
    conclusion = serializers.CharField(required=False, allow_blank=True)
    appointment_date = serializers.DateTimeField(required=False, allow_null=True)
    weight = serializers.FloatField(required=False, allow_null=True, min_value=0)
    temperature = serializers.FloatField(required=False, allow_null=True)
    blood_pressure = serializers.CharField(max_length=20, required=False, allow_blank=True)
    follow_up_date = serializers.DateField(required=False, allow_null=True)
    price = serializers.IntegerField(required=False, min_value=0)
    prescriptions = PrescriptionSerializer(many=True, required=False)

    def validate_diagnosis(self, v):
        v = _clean(v)
        if not v:
            raise serializers.ValidationError('Diagnosis is required')
        return v

    def validate_symptoms(self, v):
        return _clean(v)

    def validate_conclusion(self, v):
        return _clean(v)


class SingleInjectionSerializer(serializers.Serializer):
    pet_id = serializers.IntegerField(min_value=1)
    vaccine_id = serializers.IntegerField(min_value=1)
    dosage = serializers.IntegerField(min_value=1, required=False)


class PackageInjectionSerializer(serializers.Serializer):
    pet_id = serializers.IntegerField(min_value=1)
    package_id = serializers.IntegerField(min_value=1)
    cycle_stage = serializers.IntegerField(min_value=1, required=False, allow_null=True)
