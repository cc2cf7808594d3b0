# Generated migration for discharge app

import uuid
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('clinical', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='DischargeRequest',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('requested_by_role', models.CharField(max_length=50)),
                ('requested_at', models.DateTimeField(auto_now_add=True)),
                ('reason', models.TextField()),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('denied', 'Denied')], default='pending', max_length=20)),
                ('reviewed_by_role', models.CharField(blank=True, default='', max_length=50)),
                ('reviewed_at', models.DateTimeField(blank=True, null=True)),
                ('review_notes', models.TextField(blank=True, default='')),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='discharge_requests', to='clinical.patient')),
                ('requested_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='discharge_requests_made', to=settings.AUTH_USER_MODEL)),
                ('reviewed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='discharge_requests_reviewed', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Discharge Request',
                'verbose_name_plural': 'Discharge Requests',
                'db_table': 'discharge_request',
                'ordering': ['-requested_at'],
                'indexes': [
                    models.Index(fields=['patient', 'status'], name='idx_discharge_req_patient'),
                    models.Index(fields=['status', 'requested_at'], name='idx_discharge_req_status'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        check=(
                            models.Q(status='pending', reviewed_by__isnull=True, reviewed_at__isnull=True, reviewed_by_role='')
                            | (
                                ~models.Q(status='pending')
                                & models.Q(reviewed_by__isnull=False, reviewed_at__isnull=False)
                                & ~models.Q(reviewed_by_role='')
                            )
                        ),
                        name='discharge_request_reviewed_iff_not_pending',
                    ),
                ],
            },
        ),
    ]
