# Generated migration for clinical app

import uuid
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Patient',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('first_name', models.CharField(max_length=100)),
                ('last_name', models.CharField(max_length=100)),
                ('intake_date', models.DateField(blank=True, null=True)),
                ('discharge_date', models.DateTimeField(blank=True, null=True)),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive'), ('discharged', 'Discharged')], default='active', max_length=20)),
                ('loc', models.CharField(blank=True, default='', help_text='Level of care / program assignment', max_length=100)),
                ('target_sessions', models.PositiveIntegerField(blank=True, null=True)),
                ('target_discharge_date', models.DateField(blank=True, null=True)),
                ('auto_discharged', models.BooleanField(default=False)),
                ('discharge_reason', models.TextField(blank=True, default='')),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assigned_clinical', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_patients', to=settings.AUTH_USER_MODEL)),
                ('created_by_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_patients', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Patient',
                'verbose_name_plural': 'Patients',
                'db_table': 'patient',
                'indexes': [
                    models.Index(fields=['last_name', 'first_name'], name='idx_patient_name'),
                    models.Index(fields=['status'], name='idx_patient_status'),
                    models.Index(fields=['assigned_clinical'], name='idx_patient_assigned'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TreatmentGoal',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('goal', models.CharField(max_length=500)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('in_progress', 'In Progress'), ('achieved', 'Achieved'), ('not_achieved', 'Not Achieved')], default='pending', max_length=20)),
                ('target_date', models.DateField(blank=True, null=True)),
                ('achieved_date', models.DateField(blank=True, null=True)),
                ('notes', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='treatment_goals', to='clinical.patient')),
            ],
            options={
                'verbose_name': 'Treatment Goal',
                'verbose_name_plural': 'Treatment Goals',
                'db_table': 'treatment_goal',
                'ordering': ['created_at'],
                'indexes': [
                    models.Index(fields=['patient', 'status'], name='idx_goal_patient_status'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TreatmentRecord',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('session_date', models.DateTimeField()),
                ('session_type', models.CharField(blank=True, choices=[('individual', 'Individual'), ('group', 'Group'), ('family', 'Family'), ('assessment', 'Assessment')], default='', max_length=20)),
                ('session_notes', models.TextField(blank=True, default='')),
                ('goals', models.TextField(blank=True, default='')),
                ('interventions', models.TextField(blank=True, default='')),
                ('progress', models.TextField(blank=True, default='')),
                ('plan_for_next_session', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='treatment_records', to='clinical.patient')),
                ('therapist', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='treatment_records', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Treatment Record',
                'verbose_name_plural': 'Treatment Records',
                'db_table': 'treatment_record',
                'ordering': ['-session_date'],
                'indexes': [
                    models.Index(fields=['patient', 'session_date'], name='idx_record_patient_date'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Appointment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('appointment_date', models.DateTimeField()),
                ('duration', models.PositiveIntegerField(default=60, help_text='Duration in minutes')),
                ('type', models.CharField(choices=[('initial', 'Initial Consultation'), ('follow_up', 'Follow-up'), ('assessment', 'Assessment'), ('group', 'Group Session')], default='follow_up', max_length=20)),
                ('status', models.CharField(choices=[('scheduled', 'Scheduled'), ('completed', 'Completed'), ('cancelled', 'Cancelled'), ('no_show', 'No Show'), ('overdue', 'Overdue')], default='scheduled', max_length=20)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('clinical', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='appointments', to=settings.AUTH_USER_MODEL)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='appointments', to='clinical.patient')),
            ],
            options={
                'verbose_name': 'Appointment',
                'verbose_name_plural': 'Appointments',
                'db_table': 'appointment',
                'ordering': ['-appointment_date'],
                'indexes': [
                    models.Index(fields=['patient', 'appointment_date'], name='idx_appointment_patient_date'),
                    models.Index(fields=['status'], name='idx_appointment_status'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PatientAuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('action', models.CharField(choices=[('status_change', 'Status Change'), ('auto_discharge', 'Auto Discharge'), ('discharge_approved', 'Discharge Approved'), ('remove_from_program', 'Remove From Program')], max_length=30)),
                ('metadata', models.JSONField(default=dict)),
                ('actor_user', models.ForeignKey(blank=True, help_text='User who performed the action (null for system actions)', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='patient_audit_logs', to=settings.AUTH_USER_MODEL)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='audit_logs', to='clinical.patient')),
            ],
            options={
                'verbose_name': 'Patient Audit Log',
                'verbose_name_plural': 'Patient Audit Logs',
                'db_table': 'patient_audit_log',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['created_at'], name='idx_audit_created_at'),
                    models.Index(fields=['patient'], name='idx_audit_patient'),
                    models.Index(fields=['action'], name='idx_audit_action'),
                ],
            },
        ),
    ]
