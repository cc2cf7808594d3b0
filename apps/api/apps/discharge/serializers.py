"""
Discharge serializers: evaluation results, discharge requests, review input.
"""
from rest_framework import serializers

from apps.discharge.models import DischargeRequest, DischargeRequestStatusChoices


class DischargeEvaluationSerializer(serializers.Serializer):
    """Read-only rendering of a DischargeCriteriaResult."""
    patient_id = serializers.CharField()
    patient_status = serializers.CharField()
    should_discharge = serializers.BooleanField()
    reason = serializers.CharField()
    criteria = serializers.ListField(child=serializers.CharField())
    failed_criteria = serializers.ListField(child=serializers.CharField())
    evaluated_at = serializers.DateTimeField()
    evaluation_token = serializers.CharField(allow_null=True)


class AutoDischargeSerializer(serializers.Serializer):
    evaluation_token = serializers.CharField(allow_blank=True)


class DischargeRequestSerializer(serializers.ModelSerializer):
    """Discharge request as returned by the API (never written through it)."""
    patient_name = serializers.SerializerMethodField()
    requested_by_name = serializers.SerializerMethodField()
    reviewed_by_name = serializers.SerializerMethodField()

    class Meta:
        model = DischargeRequest
        fields = [
            'id',
            'patient_id',
            'patient_name',
            'requested_by_id',
            'requested_by_name',
            'requested_by_role',
            'requested_at',
            'reason',
            'status',
            'reviewed_by_id',
            'reviewed_by_name',
            'reviewed_by_role',
            'reviewed_at',
            'review_notes',
        ]
        read_only_fields = fields

    def get_patient_name(self, obj):
        return f"{obj.patient.first_name} {obj.patient.last_name}"

    def get_requested_by_name(self, obj):
        return obj.requested_by.display_name

    def get_reviewed_by_name(self, obj):
        return obj.reviewed_by.display_name if obj.reviewed_by else None


class DischargeRequestCreateSerializer(serializers.Serializer):
    reason = serializers.CharField(trim_whitespace=True)


class DischargeRequestReviewSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=[
        DischargeRequestStatusChoices.APPROVED.value,
        DischargeRequestStatusChoices.DENIED.value,
    ])
    notes = serializers.CharField(required=False, allow_blank=True, default='')
