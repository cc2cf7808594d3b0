"""
Clinical URLs - Patients, treatment goals, treatment records, appointments.
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    AppointmentViewSet,
    PatientViewSet,
    TreatmentGoalViewSet,
    TreatmentRecordViewSet,
)

router = DefaultRouter()
router.register(r'patients', PatientViewSet, basename='patient')
router.register(r'goals', TreatmentGoalViewSet, basename='treatment-goal')
router.register(r'treatment-records', TreatmentRecordViewSet, basename='treatment-record')
router.register(r'appointments', AppointmentViewSet, basename='appointment')

urlpatterns = [
    path('', include(router.urls)),
]
