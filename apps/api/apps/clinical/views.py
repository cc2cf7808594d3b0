"""
Clinical viewsets for Patient, TreatmentGoal, TreatmentRecord and Appointment.
"""
import logging
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Q
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.authz.permissions import resolve_actor_role
from apps.clinical.lifecycle import remove_from_program, set_patient_status
from apps.clinical.models import (
    Appointment,
    Patient,
    TreatmentGoal,
    TreatmentRecord,
)
from apps.clinical.permissions import (
    AppointmentPermission,
    ClinicalRecordPermission,
    PatientPermission,
)
from apps.clinical.serializers import (
    AppointmentSerializer,
    PatientDetailSerializer,
    PatientListSerializer,
    PatientStatusSerializer,
    RemoveFromProgramSerializer,
    TreatmentGoalSerializer,
    TreatmentRecordSerializer,
)
from apps.clinical.services import update_treatment_goal
from apps.core.exceptions import LifecycleError, error_response, validation_error_response
from apps.core.query_params import date_param, uuid_param
from apps.core.observability.tracing import trace_span

logger = logging.getLogger(__name__)


class PatientViewSet(viewsets.ModelViewSet):
    """
    ViewSet for Patient endpoints.

    Endpoints:
    - POST /api/v1/clinical/patients/
    - GET /api/v1/clinical/patients/
    - GET /api/v1/clinical/patients/{id}/
    - PATCH /api/v1/clinical/patients/{id}/
    - POST /api/v1/clinical/patients/{id}/status/
    - POST /api/v1/clinical/patients/remove-from-program/

    Query parameters:
    - ?q=search_term - Search by first/last name
    - ?status=active|inactive|discharged
    - ?loc=<program>
    - ?assigned_to_me=true
    """
    permission_classes = [PatientPermission]
    http_method_names = ['get', 'post', 'patch', 'head', 'options']

    def get_queryset(self):
        queryset = Patient.objects.select_related('assigned_clinical')

        q = self.request.query_params.get('q')
        if q:
            queryset = queryset.filter(
                Q(first_name__icontains=q) |
                Q(last_name__icontains=q)
            )

        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)

        loc = self.request.query_params.get('loc')
        if loc:
            queryset = queryset.filter(loc=loc)

        if self.request.query_params.get('assigned_to_me', 'false').lower() == 'true':
            queryset = queryset.filter(assigned_clinical=self.request.user)

        return queryset.order_by('last_name', 'first_name')

    def get_serializer_class(self):
        if self.action == 'list':
            return PatientListSerializer
        return PatientDetailSerializer

    @action(detail=True, methods=['post'], url_path='status')
    def change_status(self, request, pk=None):
        """
        Manual status change through the transition guard.

        POST /api/v1/clinical/patients/{id}/status/
        {"status": "inactive"}

        Returns:
        - 200: Transition successful
        - 400: Invalid transition or validation error
        - 403: Role not allowed
        - 404: Patient not found
        - 409: Concurrent change
        """
        serializer = PatientStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data['status']
        actor_role = resolve_actor_role(request.user)

        with trace_span('patient_status_change', attributes={
            'patient_id': str(pk),
            'to_status': new_status,
        }):
            try:
                patient = set_patient_status(pk, new_status, request.user, actor_role)
            except LifecycleError as e:
                logger.warning(
                    'Patient status change rejected',
                    extra={
                        'patient_id': str(pk),
                        'to_status': new_status,
                        'actor_role': actor_role,
                        'error_type': e.error_type,
                    }
                )
                return error_response(e)

        return Response(PatientDetailSerializer(patient, context={'request': request}).data)

    @action(detail=False, methods=['post'], url_path='remove-from-program')
    def remove_from_program(self, request):
        """
        Clear the level-of-care assignment of several patients at once.

        POST /api/v1/clinical/patients/remove-from-program/
        {"patient_ids": ["<uuid>", ...]}
        """
        serializer = RemoveFromProgramSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            updated = remove_from_program(
                serializer.validated_data['patient_ids'],
                request.user,
                resolve_actor_role(request.user),
            )
        except LifecycleError as e:
            return error_response(e)
        except DjangoValidationError as e:
            return validation_error_response(e)

        return Response({'updated': updated}, status=status.HTTP_200_OK)


class TreatmentGoalViewSet(viewsets.ModelViewSet):
    """
    ViewSet for TreatmentGoal endpoints.

    - GET /api/v1/clinical/goals/?patient_id=<uuid>
    - POST /api/v1/clinical/goals/
    - PATCH /api/v1/clinical/goals/{id}/

    PATCH responses carry `should_check_discharge`; true once the goal is
    achieved, as a hint to re-run the discharge evaluation.
    """
    serializer_class = TreatmentGoalSerializer
    permission_classes = [ClinicalRecordPermission]
    http_method_names = ['get', 'post', 'patch', 'head', 'options']

    def get_queryset(self):
        queryset = TreatmentGoal.objects.all()
        patient_id = uuid_param(self.request, 'patient_id')
        if patient_id:
            queryset = queryset.filter(patient_id=patient_id)
        return queryset

    def partial_update(self, request, *args, **kwargs):
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        updates = dict(serializer.validated_data)
        updates.pop('patient_id', None)

        try:
            goal, should_check_discharge = update_treatment_goal(instance.pk, updates)
        except LifecycleError as e:
            return error_response(e)
        except DjangoValidationError as e:
            return validation_error_response(e)

        data = dict(self.get_serializer(goal).data)
        data['should_check_discharge'] = should_check_discharge
        return Response(data)


class TreatmentRecordViewSet(viewsets.ModelViewSet):
    """
    ViewSet for TreatmentRecord (session notes).

    - GET /api/v1/clinical/treatment-records/?patient_id=<uuid>
    - POST /api/v1/clinical/treatment-records/
    """
    serializer_class = TreatmentRecordSerializer
    permission_classes = [ClinicalRecordPermission]
    http_method_names = ['get', 'post', 'patch', 'head', 'options']

    def get_queryset(self):
        queryset = TreatmentRecord.objects.select_related('therapist')
        patient_id = uuid_param(self.request, 'patient_id')
        if patient_id:
            queryset = queryset.filter(patient_id=patient_id)
        return queryset


class AppointmentViewSet(viewsets.ModelViewSet):
    """
    ViewSet for Appointment endpoints.

    - GET /api/v1/clinical/appointments/?patient_id=<uuid>&status=scheduled
    - POST /api/v1/clinical/appointments/
    - PATCH /api/v1/clinical/appointments/{id}/
    """
    serializer_class = AppointmentSerializer
    permission_classes = [AppointmentPermission]
    http_method_names = ['get', 'post', 'patch', 'head', 'options']

    def get_queryset(self):
        queryset = Appointment.objects.select_related('patient', 'clinical')

        patient_id = uuid_param(self.request, 'patient_id')
        if patient_id:
            queryset = queryset.filter(patient_id=patient_id)

        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)

        date_from = date_param(self.request, 'date_from')
        if date_from:
            queryset = queryset.filter(appointment_date__date__gte=date_from)

        date_to = date_param(self.request, 'date_to')
        if date_to:
            queryset = queryset.filter(appointment_date__date__lte=date_to)

        return queryset
