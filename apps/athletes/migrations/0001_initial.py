# Initial athletes schema

import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Athlete',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
                ('first_name', models.CharField(max_length=100)),
                ('last_name', models.CharField(max_length=100)),
                ('date_of_birth', models.DateField()),
                ('gender', models.CharField(choices=[('M', 'Male'), ('F', 'Female')], max_length=1)),
                ('age', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('category', models.CharField(blank=True, db_index=True, max_length=10)),
                ('date_joined', models.DateField(default=django.utils.timezone.localdate)),
                ('coach', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='coached_athletes', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'athletes',
                'ordering': ['last_name', 'first_name'],
                'indexes': [
                    models.Index(fields=['coach', 'last_name'], name='athletes_coach_last_idx'),
                ],
            },
        ),
    ]
