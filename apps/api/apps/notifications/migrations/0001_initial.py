# Generated migration for notifications app

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
            name='Notification',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('type', models.CharField(choices=[('discharge_request_created', 'Discharge Request Created'), ('discharge_request_approved', 'Discharge Request Approved'), ('discharge_request_denied', 'Discharge Request Denied'), ('patient_discharged', 'Patient Discharged'), ('patient_status_changed', 'Patient Status Changed')], max_length=50)),
                ('title', models.CharField(max_length=255)),
                ('message', models.TextField()),
                ('data', models.JSONField(blank=True, default=dict)),
                ('read', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('recipient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Notification',
                'verbose_name_plural': 'Notifications',
                'db_table': 'notification',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['recipient', 'read'], name='idx_notification_unread'),
                    models.Index(fields=['recipient', 'created_at'], name='idx_notification_recent'),
                ],
            },
        ),
    ]
