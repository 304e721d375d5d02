"""
Management command to seed canonical permissions and built-in roles.

Creates all global Permission records, the four system roles and their
default role grants. This command is idempotent and safe to re-run.
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from apps.rbac.models import (
    Component, ComponentPermission, Permission, Role, RoleName, RolePermission
)
from apps.rbac.resolver import BASELINE_PERMISSIONS, WILDCARD


class Command(BaseCommand):
    help = 'Seed canonical permissions, system roles and default grants (idempotent)'

    CANONICAL_PERMISSIONS = [
        ('athletes.view', 'View athletes and athlete details'),
        ('athletes.create', 'Create athlete records'),
        ('athletes.edit', 'Update athlete records'),
        ('athletes.delete', 'Delete athlete records'),
        ('athletes.avatar.view', 'View athlete avatars'),
        ('athletes.avatar.upload', 'Upload athlete avatars'),
        ('results.view', 'View results'),
        ('results.create', 'Record results'),
        ('results.edit', 'Update results'),
        ('results.delete', 'Delete results'),
        ('events.view', 'View events'),
        ('events.create', 'Create events'),
        ('events.edit', 'Update events'),
        ('events.delete', 'Delete events'),
        ('events.manage', 'Full control over events'),
        ('messages.view', 'Read messages'),
        ('messages.create', 'Send messages'),
        ('access_requests.view', 'View parent access requests'),
        ('access_requests.create', 'Request access to an athlete'),
        ('access_requests.edit', 'Answer parent access requests'),
        ('approval_requests.view', 'View account approval requests'),
        ('roles.view', 'View roles and role grants'),
        ('roles.manage', 'Create, update and delete roles and role grants'),
        ('permissions.view', 'View permissions and user grants'),
        ('permissions.manage', 'Grant and revoke user permissions'),
    ]

    # component name -> (display name, {role: flags})
    CANONICAL_COMPONENTS = {
        'athletes': ('Athletes', {
            RoleName.COACH: ('view', 'create', 'edit', 'export'),
            RoleName.PARENT: ('view',),
            RoleName.ATHLETE: ('view',),
        }),
        'results': ('Results', {
            RoleName.COACH: ('view', 'create', 'edit', 'export'),
            RoleName.PARENT: ('view',),
            RoleName.ATHLETE: ('view',),
        }),
        'events': ('Events', {
            RoleName.COACH: ('view',),
            RoleName.PARENT: ('view',),
            RoleName.ATHLETE: ('view',),
        }),
        'messages': ('Messages', {
            RoleName.COACH: ('view', 'create'),
            RoleName.PARENT: ('view', 'create'),
            RoleName.ATHLETE: ('view',),
        }),
        'approvals': ('Approvals', {
            RoleName.COACH: ('view', 'edit'),
        }),
    }

    def add_arguments(self, parser):
        parser.add_argument(
            '--skip-role-grants',
            action='store_true',
            help='Only create permissions and roles; leave role grants untouched',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        """Create or update all canonical permissions, roles and grants."""

        created_count = 0
        updated_count = 0

        self.stdout.write('Seeding canonical permissions...\n')

        for name, description in self.CANONICAL_PERMISSIONS:
            permission, created = Permission.objects.get_or_create_permission(
                name=name,
                description=description,
            )

            if created:
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f'✓ Created: {permission.name}'))
            elif permission.description != description:
                permission.description = description
                permission.save(update_fields=['description', 'updated_at'])
                updated_count += 1
                self.stdout.write(self.style.WARNING(f'↻ Updated: {permission.name}'))

        roles = {name: Role.objects.system_role(name) for name in RoleName.SYSTEM_ROLES}
        Role.objects.filter(name__in=RoleName.SYSTEM_ROLES, is_system=False).update(is_system=True)
        self.stdout.write(f'System roles: {", ".join(sorted(roles))}')

        if not options['skip_role_grants']:
            for role_name, names in BASELINE_PERMISSIONS.items():
                granted = 0
                for name in names:
                    if name == WILDCARD:
                        continue
                    permission = Permission.objects.by_name(name)
                    _, created = RolePermission.objects.grant_permission(roles[role_name], permission)
                    granted += int(created)
                self.stdout.write(f'  {role_name}: {granted} grants added')

            self._seed_components(roles)

        self.stdout.write(
            self.style.SUCCESS(
                f'\n✓ Seeding complete: {created_count} created, {updated_count} updated, '
                f'{len(self.CANONICAL_PERMISSIONS) - created_count - updated_count} unchanged'
            )
        )
        self.stdout.write(f'Total permissions: {Permission.objects.count()}')

    def _seed_components(self, roles):
        for name, (display_name, grants) in self.CANONICAL_COMPONENTS.items():
            component, _ = Component.objects.get_or_create(
                name=name,
                defaults={'display_name': display_name},
            )
            for role_name, actions in grants.items():
                ComponentPermission.objects.update_or_create(
                    role=roles[role_name],
                    component=component,
                    defaults={f'can_{action}': True for action in actions},
                )
