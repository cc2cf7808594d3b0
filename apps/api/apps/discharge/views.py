"""
Discharge API views.

Endpoints:
- POST /api/v1/discharge/patients/{id}/evaluate/
- POST /api/v1/discharge/patients/{id}/auto-discharge/
- GET|POST /api/v1/discharge/patients/{id}/requests/
- GET /api/v1/discharge/requests/?status=pending
- GET /api/v1/discharge/requests/{id}/
- POST /api/v1/discharge/requests/{id}/review/
- GET /api/v1/discharge/stats/
"""
import logging
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.permissions import (
    HasAnyRole,
    IsElevatedRole,
    IsStaffRole,
    resolve_actor_role,
)
from apps.clinical.serializers import PatientDetailSerializer
from apps.core.exceptions import LifecycleError, error_response, validation_error_response
from apps.core.query_params import uuid_param
from apps.discharge import services
from apps.discharge.models import DischargeRequest, DischargeRequestStatusChoices
from apps.discharge.serializers import (
    AutoDischargeSerializer,
    DischargeEvaluationSerializer,
    DischargeRequestCreateSerializer,
    DischargeRequestReviewSerializer,
    DischargeRequestSerializer,
)

logger = logging.getLogger(__name__)


class DischargeEvaluationView(APIView):
    """
    Evaluate whether a patient meets the discharge criteria.

    Read-only: nothing is written. Eligible results include an
    `evaluation_token` to pass to the auto-discharge endpoint.
    """
    permission_classes = [IsStaffRole]

    def post(self, request, patient_id):
        try:
            result = services.evaluate_discharge(patient_id)
        except LifecycleError as e:
            return error_response(e)
        return Response(DischargeEvaluationSerializer(result.to_dict()).data)


class AutoDischargeView(APIView):
    """
    Apply a positive evaluation.

    POST {"evaluation_token": "<token from evaluate>"}

    Returns:
    - 200: patient discharged
    - 403: role may not auto-discharge
    - 404: patient not found
    - 409: already discharged, changed since evaluation, or stale token
    """
    permission_classes = [HasAnyRole]

    def post(self, request, patient_id):
        serializer = AutoDischargeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        actor_role = resolve_actor_role(request.user)

        try:
            patient = services.auto_discharge(
                patient_id,
                serializer.validated_data['evaluation_token'],
                request.user,
                actor_role,
            )
        except LifecycleError as e:
            logger.warning(
                'Auto-discharge rejected',
                extra={
                    'patient_id': str(patient_id),
                    'actor_role': actor_role,
                    'error_type': e.error_type,
                }
            )
            return error_response(e)

        return Response(PatientDetailSerializer(patient, context={'request': request}).data)


class PatientDischargeRequestsView(APIView):
    """
    GET: discharge requests of one patient, newest first.
    POST {"reason": "..."}: open a new request (staff roles only).
    """
    permission_classes = [HasAnyRole]

    def get(self, request, patient_id):
        try:
            requests = services.list_discharge_requests(
                patient_id=patient_id,
                status=request.query_params.get('status') or None,
            )
        except LifecycleError as e:
            return error_response(e)
        except DjangoValidationError as e:
            return validation_error_response(e)
        return Response(DischargeRequestSerializer(requests, many=True).data)

    def post(self, request, patient_id):
        serializer = DischargeRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            discharge_request = services.create_discharge_request(
                patient_id,
                request.user,
                resolve_actor_role(request.user),
                serializer.validated_data['reason'],
            )
        except LifecycleError as e:
            return error_response(e)
        except DjangoValidationError as e:
            return validation_error_response(e)

        return Response(
            DischargeRequestSerializer(discharge_request).data,
            status=status.HTTP_201_CREATED,
        )


class DischargeRequestViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Discharge requests across all patients.

    Query parameters:
    - ?status=pending|approved|denied
    - ?patient_id=<uuid>
    """
    serializer_class = DischargeRequestSerializer
    permission_classes = [HasAnyRole]

    def get_queryset(self):
        queryset = DischargeRequest.objects.select_related('patient', 'requested_by', 'reviewed_by')

        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)

        patient_id = uuid_param(self.request, 'patient_id')
        if patient_id:
            queryset = queryset.filter(patient_id=patient_id)

        return queryset.order_by('-requested_at')

    def list(self, request, *args, **kwargs):
        status_filter = request.query_params.get('status')
        if status_filter and status_filter not in DischargeRequestStatusChoices.values:
            return Response(
                {
                    'error': f"Invalid status. Options: {', '.join(DischargeRequestStatusChoices.values)}",
                    'error_type': 'validation_error',
                },
                status=status.HTTP_400_BAD_REQUEST,
            )
        return super().list(request, *args, **kwargs)

    @action(detail=True, methods=['post'], permission_classes=[IsElevatedRole])
    def review(self, request, pk=None):
        """
        Approve or deny a pending request.

        POST {"decision": "approved"|"denied", "notes": "..."}

        Approval discharges the patient in the same transaction.
        """
        serializer = DischargeRequestReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            discharge_request = services.review_discharge_request(
                pk,
                request.user,
                resolve_actor_role(request.user),
                serializer.validated_data['decision'],
                serializer.validated_data.get('notes'),
            )
        except LifecycleError as e:
            return error_response(e)
        except DjangoValidationError as e:
            return validation_error_response(e)

        return Response(DischargeRequestSerializer(discharge_request).data)


class DischargeStatsView(APIView):
    """Treatment completion statistics (admin/supervisor)."""
    permission_classes = [IsElevatedRole]

    def get(self, request):
        return Response(services.discharge_completion_stats())
