# Initial RBAC schema: users, roles, permissions, grants, UI components

import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def base_fields():
    return [
        ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier', primary_key=True, serialize=False)),
        ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the record was created')),
        ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Role',
            fields=base_fields() + [
                ('name', models.CharField(help_text="Role name (e.g., 'coach')", max_length=100, unique=True)),
                ('description', models.TextField(blank=True)),
                ('is_system', models.BooleanField(db_index=True, default=False, help_text='Whether this is a built-in role')),
            ],
            options={
                'db_table': 'roles',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Permission',
            fields=base_fields() + [
                ('name', models.CharField(db_index=True, help_text="Unique permission name (e.g., 'athletes.edit')", max_length=100, unique=True)),
                ('description', models.TextField(blank=True)),
                ('category', models.CharField(blank=True, db_index=True, max_length=50)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
            ],
            options={
                'db_table': 'permissions',
                'ordering': ['category', 'name'],
            },
        ),
        migrations.CreateModel(
            name='Component',
            fields=base_fields() + [
                ('name', models.CharField(max_length=100, unique=True)),
                ('display_name', models.CharField(max_length=255)),
                ('component_type', models.CharField(default='page', max_length=50)),
            ],
            options={
                'db_table': 'components',
                'ordering': ['display_name'],
            },
        ),
        migrations.CreateModel(
            name='User',
            fields=base_fields() + [
                ('email', models.EmailField(db_index=True, help_text='User email address (unique)', max_length=254, unique=True)),
                ('password_hash', models.CharField(db_column='password_hash', help_text='Hashed password', max_length=255)),
                ('first_name', models.CharField(blank=True, max_length=100)),
                ('last_name', models.CharField(blank=True, max_length=100)),
                ('role_name', models.CharField(db_index=True, help_text='Declared role name (display value derived from role)', max_length=100)),
                ('is_active', models.BooleanField(db_index=True, default=False, help_text='Whether the account may use active screens')),
                ('needs_approval', models.BooleanField(db_index=True, default=True, help_text='Whether the account still awaits approval')),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('last_login_at', models.DateTimeField(blank=True, null=True)),
                ('approved_by', models.ForeignKey(blank=True, help_text='User who approved this account', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='approved_users', to=settings.AUTH_USER_MODEL)),
                ('role', models.ForeignKey(blank=True, help_text='Canonical role reference', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='users', to='rbac.role')),
            ],
            options={
                'db_table': 'users',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['role_name', 'is_active'], name='users_role_active_idx'),
                    models.Index(fields=['needs_approval', 'created_at'], name='users_approval_created_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='RolePermission',
            fields=base_fields() + [
                ('permission', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='role_permissions', to='rbac.permission')),
                ('role', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='role_permissions', to='rbac.role')),
            ],
            options={
                'db_table': 'role_permissions',
                'ordering': ['role', 'permission'],
                'unique_together': {('role', 'permission')},
            },
        ),
        migrations.CreateModel(
            name='UserPermission',
            fields=base_fields() + [
                ('resource_type', models.CharField(blank=True, default='', max_length=50)),
                ('resource_id', models.UUIDField(blank=True, null=True)),
                ('expires_at', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('granted_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='permission_grants_made', to=settings.AUTH_USER_MODEL)),
                ('permission', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='user_permissions', to='rbac.permission')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='user_permissions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'user_permissions',
                'ordering': ['user', 'permission'],
                'unique_together': {('user', 'permission', 'resource_type', 'resource_id')},
            },
        ),
        migrations.CreateModel(
            name='ComponentPermission',
            fields=base_fields() + [
                ('can_view', models.BooleanField(default=False)),
                ('can_create', models.BooleanField(default=False)),
                ('can_edit', models.BooleanField(default=False)),
                ('can_delete', models.BooleanField(default=False)),
                ('can_export', models.BooleanField(default=False)),
                ('component', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='component_permissions', to='rbac.component')),
                ('role', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='component_permissions', to='rbac.role')),
            ],
            options={
                'db_table': 'component_permissions',
                'unique_together': {('role', 'component')},
            },
        ),
    ]
