"""
Tests for lifecycle events and notifications.

Signals are sent on commit, so every flow runs inside
django_capture_on_commit_callbacks(execute=True).
"""
from unittest.mock import patch

import pytest
from rest_framework import status

from apps.clinical.lifecycle import set_patient_status
from apps.clinical.models import Patient
from apps.discharge.services import (
    auto_discharge,
    create_discharge_request,
    evaluate_discharge,
    review_discharge_request,
)
from apps.notifications.models import Notification
from apps.notifications.services import create_notification


NOTIFICATIONS_URL = '/api/v1/notifications/'


@pytest.mark.django_db
class TestDischargeRequestNotifications:

    def test_request_notifies_reviewers_except_requester(
        self, django_capture_on_commit_callbacks, patient, admin_user, supervisor_user, staff_user
    ):
        with django_capture_on_commit_callbacks(execute=True):
            request = create_discharge_request(patient.id, supervisor_user, 'supervisor', 'Relocating')

        notifications = Notification.objects.filter(type='discharge_request_created')
        assert [n.recipient for n in notifications] == [admin_user]
        assert notifications[0].data == {'request_id': str(request.id), 'patient_id': str(patient.id)}
        assert 'Jane Roe' in notifications[0].message

    def test_no_notification_before_commit(self, django_capture_on_commit_callbacks, patient, admin_user, therapist_user):
        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            create_discharge_request(patient.id, therapist_user, 'therapist', 'Relocating')

        assert len(callbacks) == 1
        assert Notification.objects.count() == 0

    def test_approval_notifies_requester_and_clinician(
        self, django_capture_on_commit_callbacks, patient, therapist_user, staff_user, supervisor_user
    ):
        request = create_discharge_request(patient.id, staff_user, 'staff', 'Relocating')

        with django_capture_on_commit_callbacks(execute=True):
            review_discharge_request(request.id, supervisor_user, 'supervisor', 'approved')

        approved = Notification.objects.get(type='discharge_request_approved')
        assert approved.recipient == staff_user
        assert approved.data['decision'] == 'approved'

        discharged = Notification.objects.get(type='patient_discharged')
        assert discharged.recipient == therapist_user
        assert discharged.data == {'patient_id': str(patient.id), 'channel': 'discharge_request'}

    def test_denial_notifies_requester_only(
        self, django_capture_on_commit_callbacks, patient, staff_user, admin_user
    ):
        request = create_discharge_request(patient.id, staff_user, 'staff', 'Relocating')

        with django_capture_on_commit_callbacks(execute=True):
            review_discharge_request(request.id, admin_user, 'admin', 'denied')

        assert list(Notification.objects.values_list('type', 'recipient')) == [
            ('discharge_request_denied', staff_user.pk),
        ]


@pytest.mark.django_db
class TestPatientNotifications:

    def test_auto_discharge_notifies_clinician(self, django_capture_on_commit_callbacks, eligible_patient, admin_user, therapist_user):
        result = evaluate_discharge(eligible_patient.id)

        with django_capture_on_commit_callbacks(execute=True):
            auto_discharge(eligible_patient.id, result.evaluation_token, admin_user, 'admin')

        notification = Notification.objects.get(type='patient_discharged')
        assert notification.recipient == therapist_user
        assert 'automatically' in notification.message

    def test_status_change_by_someone_else(self, django_capture_on_commit_callbacks, patient, admin_user, therapist_user):
        with django_capture_on_commit_callbacks(execute=True):
            set_patient_status(patient.id, 'inactive', admin_user, 'admin')

        notification = Notification.objects.get(type='patient_status_changed')
        assert notification.recipient == therapist_user
        assert notification.data['to_status'] == 'inactive'

    def test_own_status_change_is_silent(self, django_capture_on_commit_callbacks, patient, therapist_user):
        with django_capture_on_commit_callbacks(execute=True):
            set_patient_status(patient.id, 'inactive', therapist_user, 'therapist')

        assert Notification.objects.count() == 0

    def test_unassigned_patient_discharge_is_silent(self, django_capture_on_commit_callbacks, other_patient, admin_user):
        with django_capture_on_commit_callbacks(execute=True):
            set_patient_status(other_patient.id, 'discharged', admin_user, 'admin')

        assert Notification.objects.count() == 0

    def test_discharge_tells_requester_their_request_was_closed(
        self, django_capture_on_commit_callbacks, patient, staff_user, admin_user, therapist_user
    ):
        create_discharge_request(patient.id, staff_user, 'staff', 'Relocating')

        with django_capture_on_commit_callbacks(execute=True):
            set_patient_status(patient.id, 'discharged', admin_user, 'admin')

        denied = Notification.objects.get(type='discharge_request_denied')
        assert denied.recipient == staff_user
        assert Notification.objects.get(type='patient_discharged').recipient == therapist_user

    def test_receiver_failure_keeps_transition(self, django_capture_on_commit_callbacks, patient, admin_user):
        with patch('apps.notifications.receivers.create_notification', side_effect=RuntimeError('smtp down')):
            with django_capture_on_commit_callbacks(execute=True):
                set_patient_status(patient.id, 'discharged', admin_user, 'admin')

        assert Patient.objects.get(pk=patient.pk).status == 'discharged'
        assert Notification.objects.count() == 0


@pytest.mark.django_db
class TestNotificationEmail:

    def test_email_sent_when_enabled(self, settings, mailoutbox, django_capture_on_commit_callbacks, therapist_user):
        settings.NOTIFICATIONS_EMAIL_ENABLED = True

        with django_capture_on_commit_callbacks(execute=True):
            create_notification(therapist_user, 'patient_discharged', 'Patient discharged', 'Jane Roe was discharged.')

        assert len(mailoutbox) == 1
        assert mailoutbox[0].subject == 'Patient discharged'
        assert mailoutbox[0].to == ['therapist@test.com']

    def test_no_email_by_default(self, mailoutbox, django_capture_on_commit_callbacks, therapist_user):
        with django_capture_on_commit_callbacks(execute=True):
            create_notification(therapist_user, 'patient_discharged', 'Patient discharged', 'Jane Roe was discharged.')

        assert mailoutbox == []


@pytest.mark.django_db
class TestNotificationEndpoints:

    def test_lists_only_own(self, therapist_client, therapist_user, staff_user):
        create_notification(therapist_user, 'patient_discharged', 'Mine', 'For me')
        create_notification(staff_user, 'patient_discharged', 'Theirs', 'Not for me')

        response = therapist_client.get(NOTIFICATIONS_URL)

        assert response.status_code == status.HTTP_200_OK
        assert [n['title'] for n in response.data['results']] == ['Mine']

    def test_mark_read(self, therapist_client, therapist_user):
        notification = create_notification(therapist_user, 'patient_discharged', 'Mine', 'For me')

        response = therapist_client.post(f'{NOTIFICATIONS_URL}{notification.id}/read/')

        assert response.status_code == status.HTTP_200_OK
        assert Notification.objects.get(pk=notification.pk).read is True

    def test_cannot_mark_someone_elses(self, therapist_client, staff_user):
        notification = create_notification(staff_user, 'patient_discharged', 'Theirs', 'Not for me')

        response = therapist_client.post(f'{NOTIFICATIONS_URL}{notification.id}/read/')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert Notification.objects.get(pk=notification.pk).read is False

    def test_read_all_and_unread_count(self, therapist_client, therapist_user):
        create_notification(therapist_user, 'patient_discharged', 'One', 'First')
        create_notification(therapist_user, 'patient_status_changed', 'Two', 'Second')

        assert therapist_client.get(f'{NOTIFICATIONS_URL}unread-count/').data == {'unread': 2}

        response = therapist_client.post(f'{NOTIFICATIONS_URL}read-all/')

        assert response.data == {'updated': 2}
        assert therapist_client.get(f'{NOTIFICATIONS_URL}unread-count/').data == {'unread': 0}
