"""
Clinical serializers for Patient, TreatmentGoal, TreatmentRecord and Appointment.
"""
from rest_framework import serializers
from apps.clinical.models import (
    Appointment,
    AppointmentStatusChoices,
    GoalStatusChoices,
    Patient,
    PatientStatusChoices,
    TreatmentGoal,
    TreatmentRecord,
)


class PatientListSerializer(serializers.ModelSerializer):
    """Serializer for Patient list view (limited fields)"""

    class Meta:
        model = Patient
        fields = [
            'id',
            'first_name',
            'last_name',
            'status',
            'loc',
            'assigned_clinical_id',
            'intake_date',
            'discharge_date',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class PatientDetailSerializer(serializers.ModelSerializer):
    """
    Serializer for Patient detail/create/update.

    BUSINESS RULE: `status` and the discharge bookkeeping fields are read-only
    here. Status moves only through the status action (transition guard),
    auto-discharge or an approved discharge request.
    """
    assigned_clinical_id = serializers.UUIDField(required=False, allow_null=True)

    class Meta:
        model = Patient
        fields = [
            'id',
            'first_name',
            'last_name',
            'intake_date',
            'status',
            'loc',
            'assigned_clinical_id',
            'target_sessions',
            'target_discharge_date',
            'discharge_date',
            'auto_discharged',
            'discharge_reason',
            'notes',
            'created_by_user_id',
            'created_at',
            'updated_at',
        ]
        read_only_fields = [
            'id',
            'status',
            'discharge_date',
            'auto_discharged',
            'discharge_reason',
            'created_by_user_id',
            'created_at',
            'updated_at',
        ]

    def validate(self, attrs):
        if 'status' in self.initial_data:
            raise serializers.ValidationError({
                'status': ['Patient status cannot be edited directly; use the status endpoint.']
            })
        return attrs

    def validate_assigned_clinical_id(self, value):
        from django.contrib.auth import get_user_model

        if value and not get_user_model().objects.filter(pk=value, is_active=True).exists():
            raise serializers.ValidationError('Unknown or inactive user')
        return value

    def create(self, validated_data):
        validated_data['created_by_user'] = self.context['request'].user
        return super().create(validated_data)


class PatientStatusSerializer(serializers.Serializer):
    """Body of POST /patients/{id}/status/"""
    status = serializers.ChoiceField(choices=PatientStatusChoices.choices)


class RemoveFromProgramSerializer(serializers.Serializer):
    """Body of POST /patients/remove-from-program/"""
    patient_ids = serializers.ListField(
        child=serializers.UUIDField(),
        allow_empty=False
    )


class TreatmentGoalSerializer(serializers.ModelSerializer):
    """Serializer for TreatmentGoal"""
    patient_id = serializers.UUIDField()

    class Meta:
        model = TreatmentGoal
        fields = [
            'id',
            'patient_id',
            'goal',
            'status',
            'target_date',
            'achieved_date',
            'notes',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate_patient_id(self, value):
        if self.instance and value != self.instance.patient_id:
            raise serializers.ValidationError('A goal cannot be moved to another patient')
        if not Patient.objects.filter(pk=value).exists():
            raise serializers.ValidationError('Patient not found')
        return value

    def validate_status(self, value):
        if value not in GoalStatusChoices.values:
            raise serializers.ValidationError(
                f"Invalid value. Options: {', '.join(GoalStatusChoices.values)}"
            )
        return value


class TreatmentRecordSerializer(serializers.ModelSerializer):
    """Serializer for TreatmentRecord (session notes)"""
    patient_id = serializers.UUIDField()
    therapist_id = serializers.UUIDField(read_only=True)
    is_completed = serializers.BooleanField(read_only=True)

    class Meta:
        model = TreatmentRecord
        fields = [
            'id',
            'patient_id',
            'therapist_id',
            'session_date',
            'session_type',
            'session_notes',
            'goals',
            'interventions',
            'progress',
            'plan_for_next_session',
            'is_completed',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate_patient_id(self, value):
        if not Patient.objects.filter(pk=value).exists():
            raise serializers.ValidationError('Patient not found')
        return value

    def create(self, validated_data):
        validated_data['therapist'] = self.context['request'].user
        return super().create(validated_data)


class AppointmentSerializer(serializers.ModelSerializer):
    """Serializer for Appointment"""
    patient_id = serializers.UUIDField()
    clinical_id = serializers.UUIDField(required=False, allow_null=True)

    class Meta:
        model = Appointment
        fields = [
            'id',
            'patient_id',
            'clinical_id',
            'appointment_date',
            'duration',
            'type',
            'status',
            'notes',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate_patient_id(self, value):
        if not Patient.objects.filter(pk=value).exists():
            raise serializers.ValidationError('Patient not found')
        return value

    def validate(self, attrs):
        # BUSINESS RULE: no new scheduled appointments for discharged patients
        patient_id = attrs.get('patient_id')
        status = attrs.get('status', AppointmentStatusChoices.SCHEDULED)
        if patient_id and status == AppointmentStatusChoices.SCHEDULED and not self.instance:
            if Patient.objects.filter(pk=patient_id, status=PatientStatusChoices.DISCHARGED).exists():
                raise serializers.ValidationError({
                    'patient_id': ['Cannot schedule an appointment for a discharged patient']
                })
        return attrs
