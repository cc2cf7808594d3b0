from django.contrib import admin
from .models import Patient, TreatmentGoal, TreatmentRecord, Appointment, PatientAuditLog


class TreatmentGoalInline(admin.TabularInline):
    model = TreatmentGoal
    extra = 0
    fields = ['goal', 'status', 'target_date', 'achieved_date']


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ['first_name', 'last_name', 'status', 'loc', 'assigned_clinical', 'discharge_date', 'created_at']
    list_filter = ['status', 'auto_discharged', 'loc']
    search_fields = ['first_name', 'last_name']
    # Status is written only through the lifecycle services
    readonly_fields = ['id', 'status', 'discharge_date', 'auto_discharged', 'discharge_reason', 'created_at', 'updated_at']
    autocomplete_fields = ['assigned_clinical', 'created_by_user']
    inlines = [TreatmentGoalInline]

    fieldsets = (
        ('Basic Info', {
            'fields': ('id', 'first_name', 'last_name', 'intake_date', 'notes')
        }),
        ('Program', {
            'fields': ('status', 'loc', 'assigned_clinical')
        }),
        ('Discharge', {
            'fields': ('target_sessions', 'target_discharge_date', 'discharge_date', 'auto_discharged', 'discharge_reason')
        }),
        ('Audit', {
            'fields': ('created_by_user', 'created_at', 'updated_at')
        }),
    )


@admin.register(TreatmentRecord)
class TreatmentRecordAdmin(admin.ModelAdmin):
    list_display = ['patient', 'therapist', 'session_date', 'session_type']
    list_filter = ['session_type']
    search_fields = ['patient__first_name', 'patient__last_name']
    readonly_fields = ['id', 'created_at', 'updated_at']
    autocomplete_fields = ['patient', 'therapist']


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ['patient', 'clinical', 'appointment_date', 'type', 'status']
    list_filter = ['status', 'type']
    search_fields = ['patient__first_name', 'patient__last_name']
    readonly_fields = ['id', 'created_at', 'updated_at']
    autocomplete_fields = ['patient', 'clinical']


@admin.register(PatientAuditLog)
class PatientAuditLogAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'action', 'patient', 'actor_user']
    list_filter = ['action', 'created_at']
    search_fields = ['patient__first_name', 'patient__last_name', 'actor_user__email']
    readonly_fields = ['id', 'created_at', 'actor_user', 'action', 'patient', 'metadata']

    def has_add_permission(self, request):
        # Audit logs should not be manually created
        return False

    def has_delete_permission(self, request, obj=None):
        # Audit logs should not be deleted
        return False
