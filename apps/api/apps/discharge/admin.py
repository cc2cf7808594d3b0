from django.contrib import admin
from .models import DischargeRequest


@admin.register(DischargeRequest)
class DischargeRequestAdmin(admin.ModelAdmin):
    list_display = ['patient', 'status', 'requested_by', 'requested_by_role', 'requested_at', 'reviewed_by', 'reviewed_at']
    list_filter = ['status', 'requested_by_role']
    search_fields = ['patient__first_name', 'patient__last_name', 'reason']
    # Reviews go through the workflow service so the patient is discharged atomically
    readonly_fields = [
        'id', 'patient', 'requested_by', 'requested_by_role', 'requested_at', 'reason',
        'status', 'reviewed_by', 'reviewed_by_role', 'reviewed_at', 'review_notes',
    ]

    def has_add_permission(self, request):
        return False
