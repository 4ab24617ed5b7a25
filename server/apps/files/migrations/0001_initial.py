import django.utils.timezone
from django.db import migrations, models

import server.apps.files.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Account',
            fields=[
                ('id', models.CharField(help_text='Owner id supplied by the identity provider', max_length=128, primary_key=True, serialize=False)),
                ('email', models.EmailField(max_length=254)),
                ('plan', models.CharField(choices=[('free', 'Free'), ('pro', 'Pro')], default='free', max_length=8)),
                ('storage_limit', models.BigIntegerField(default=1073741824, help_text='Storage limit in bytes, fixed by plan')),
                ('storage_used', models.BigIntegerField(default=0, help_text='Sum of file sizes in bytes (recomputed, eventually exact)')),
                ('share_token', models.CharField(help_text='Account-level share token', max_length=64)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Account',
                'verbose_name_plural': 'Accounts',
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('storage_limit__gte', 0)), name='accounts_storage_limit_non_negative'),
                    models.CheckConstraint(condition=models.Q(('storage_used__gte', 0)), name='accounts_storage_used_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='FileRecord',
            fields=[
                ('id', models.CharField(default=server.apps.files.models._generate_file_id, editable=False, max_length=32, primary_key=True, serialize=False)),
                ('owner_id', models.CharField(db_index=True, max_length=128)),
                ('name', models.CharField(help_text='Original filename as uploaded', max_length=255)),
                ('size', models.BigIntegerField(help_text='File size in bytes')),
                ('mime_type', models.CharField(default='application/octet-stream', max_length=255)),
                ('uploaded_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('storage_path', models.CharField(help_text='Blob locator: users/{owner_id}/{ts}_{name}', max_length=1024, unique=True)),
                ('download_url', models.CharField(blank=True, default='', help_text='Best-effort URL captured at upload time', max_length=2048)),
                ('is_shared', models.BooleanField(default=False)),
                ('share_token', models.CharField(blank=True, default=None, max_length=64, null=True, unique=True)),
                ('share_expiry', models.DateTimeField(blank=True, default=None, null=True)),
            ],
            options={
                'verbose_name': 'File record',
                'verbose_name_plural': 'File records',
                'ordering': ['-uploaded_at'],
                'indexes': [
                    models.Index(fields=['owner_id', '-uploaded_at'], name='files_owner_recent_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('size__gt', 0)), name='files_size_positive'),
                    models.CheckConstraint(condition=models.Q(models.Q(('share_expiry__isnull', True), ('share_token__isnull', True)), models.Q(('share_expiry__isnull', False), ('share_token__isnull', False)), _connector='OR'), name='files_share_token_expiry_paired'),
                ],
            },
        ),
    ]
