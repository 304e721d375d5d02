"""
Management command to link users to their Role row.

Users created before roles were referenced by id only carry ``role_name``.
This command sets ``role`` from that name so permission resolution never
needs the name lookup for stored users. Idempotent.
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from apps.rbac.models import Role, RoleName, User


class Command(BaseCommand):
    help = 'Set the role reference of users that only carry a role name'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report what would change without writing',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        pending = User.objects.filter(role__isnull=True).exclude(role_name='')
        role_names = sorted(set(pending.values_list('role_name', flat=True)))

        if not role_names:
            self.stdout.write(self.style.SUCCESS('All users reference a role.'))
            return

        linked = 0
        unknown = []
        with transaction.atomic():
            for role_name in role_names:
                role = Role.objects.by_name(role_name)
                if role is None and role_name in RoleName.SYSTEM_ROLES and not dry_run:
                    role = Role.objects.system_role(role_name)
                if role is None and role_name not in RoleName.SYSTEM_ROLES:
                    unknown.append(role_name)
                    continue

                users = pending.filter(role_name=role_name)
                count = users.count() if dry_run else users.update(role=role)
                linked += count
                self.stdout.write(f'  {role_name}: {count} users')

        if unknown:
            self.stdout.write(
                self.style.WARNING(f'No role row for: {", ".join(unknown)} (left unlinked)')
            )

        verb = 'Would link' if dry_run else 'Linked'
        self.stdout.write(self.style.SUCCESS(f'{verb} {linked} users.'))
