import django.core.validators
import django.db.models.deletion
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Visit',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('visit_date', models.DateField(db_index=True)),
                ('visit_time', models.CharField(help_text='Time slot, e.g. 10:00', max_length=20)),
                ('number_of_visitors', models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(10)])),
                ('purpose', models.CharField(choices=[('tour', 'Farm Tour'), ('purchase', 'Purchase'), ('consultation', 'Consultation'), ('inspection', 'Inspection'), ('other', 'Other')], default='tour', max_length=20)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('confirmed', 'Confirmed'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], db_index=True, default='pending', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('confirmation_sent', models.BooleanField(default=False)),
                ('reminder_sent', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='visits', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'visits',
                'ordering': ['-visit_date', 'visit_time'],
                'indexes': [
                    models.Index(fields=['visit_date', 'status'], name='visits_visit_d_7b2c9e_idx'),
                    models.Index(fields=['user', '-visit_date'], name='visits_user_id_4d8a1f_idx'),
                ],
            },
        ),
    ]
