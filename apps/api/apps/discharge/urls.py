"""
Discharge URLs - Evaluation, auto-discharge, discharge requests, stats.
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    AutoDischargeView,
    DischargeEvaluationView,
    DischargeRequestViewSet,
    DischargeStatsView,
    PatientDischargeRequestsView,
)

router = DefaultRouter()
router.register(r'requests', DischargeRequestViewSet, basename='discharge-request')

urlpatterns = [
    path('patients/<uuid:patient_id>/evaluate/', DischargeEvaluationView.as_view(), name='discharge-evaluate'),
    path('patients/<uuid:patient_id>/auto-discharge/', AutoDischargeView.as_view(), name='discharge-auto'),
    path('patients/<uuid:patient_id>/requests/', PatientDischargeRequestsView.as_view(), name='discharge-patient-requests'),
    path('stats/', DischargeStatsView.as_view(), name='discharge-stats'),
    path('', include(router.urls)),
]
