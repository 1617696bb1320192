# Generated migration for the districts app

import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='District',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('deleted_at', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('name', models.CharField(help_text='Display name', max_length=255)),
                ('code', models.CharField(help_text='Short unique code, stored upper-case', max_length=32, unique=True)),
                ('state', models.CharField(blank=True, help_text='State the district belongs to', max_length=128)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
            ],
            options={
                'db_table': 'districts',
                'default_manager_name': 'objects',
                'ordering': ['state', 'name'],
                'indexes': [models.Index(fields=['state', 'is_active'], name='districts_state_active_idx')],
            },
        ),
    ]
