"""
Evaluate every non-discharged patient against the discharge criteria.

Usage:
    python manage.py evaluate_discharges
    python manage.py evaluate_discharges --apply --actor-email admin@example.com

Without --apply nothing is written. With --apply, eligible patients are
auto-discharged using the evaluation just obtained, acting as --actor-email.
"""
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from apps.authz.permissions import resolve_actor_role
from apps.clinical.models import Patient, PatientStatusChoices
from apps.core.exceptions import LifecycleError
from apps.discharge.services import auto_discharge, evaluate_discharge


class Command(BaseCommand):
    help = 'Evaluate discharge eligibility for all active/inactive patients'

    def add_arguments(self, parser):
        parser.add_argument(
            '--apply',
            action='store_true',
            help='Auto-discharge patients that meet every criterion',
        )
        parser.add_argument(
            '--actor-email',
            help='User recorded as the actor of auto-discharges (required with --apply)',
        )

    def handle(self, *args, **options):
        actor, actor_role = None, None
        if options['apply']:
            actor, actor_role = self._resolve_actor(options.get('actor_email'))

        patients = Patient.objects.exclude(status=PatientStatusChoices.DISCHARGED).order_by('last_name', 'first_name')
        self.stdout.write(self.style.NOTICE(f'Evaluating {patients.count()} patient(s)...'))

        eligible = discharged = failed = 0
        for patient in patients.iterator():
            try:
                result = evaluate_discharge(patient.pk)
            except LifecycleError as e:
                # Discharged between the listing and the evaluation
                self.stdout.write(f'  - {patient}: skipped ({e.message})')
                continue

            if not result.should_discharge:
                self.stdout.write(f'  - {patient}: not eligible ({result.reason})')
                continue

            eligible += 1
            self.stdout.write(self.style.SUCCESS(f'  ✓ {patient}: eligible'))

            if actor is None:
                continue

            try:
                auto_discharge(patient.pk, result.evaluation_token, actor, actor_role)
            except LifecycleError as e:
                failed += 1
                self.stdout.write(self.style.ERROR(f'    ✗ auto-discharge failed: {e.message}'))
            else:
                discharged += 1
                self.stdout.write(self.style.SUCCESS('    ✓ discharged'))

        summary = f'Eligible: {eligible}'
        if actor is not None:
            summary += f', discharged: {discharged}, failed: {failed}'
        self.stdout.write(self.style.SUCCESS(summary))

    def _resolve_actor(self, email):
        if not email:
            raise CommandError('--actor-email is required with --apply')

        User = get_user_model()
        try:
            actor = User.objects.get(email=email, is_active=True)
        except User.DoesNotExist:
            raise CommandError(f'No active user with email {email}')

        actor_role = resolve_actor_role(actor)
        if actor_role is None:
            raise CommandError(f'User {email} has no role assigned')
        return actor, actor_role
