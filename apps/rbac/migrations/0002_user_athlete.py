# Link athlete accounts to their athlete record

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('rbac', '0001_initial'),
        ('athletes', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='user',
            name='athlete',
            field=models.ForeignKey(blank=True, help_text='Athlete profile linked when an athlete account is approved', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='accounts', to='athletes.athlete'),
        ),
    ]
