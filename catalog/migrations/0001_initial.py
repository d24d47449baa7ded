from decimal import Decimal
import django.core.validators
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField()),
                ('category', models.CharField(choices=[('chick', 'Day-old Chick'), ('layer', 'Layer'), ('broiler', 'Broiler')], db_index=True, max_length=20)),
                ('breed', models.CharField(blank=True, max_length=100)),
                ('age', models.CharField(max_length=50)),
                ('age_in_days', models.PositiveIntegerField(default=0)),
                ('price', models.DecimalField(decimal_places=2, help_text='Price per bird (KES)', max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('quantity', models.IntegerField(default=0, help_text='Birds available in stock')),
                ('sold', models.PositiveIntegerField(default=0)),
                ('weight', models.CharField(blank=True, max_length=50)),
                ('features', models.JSONField(blank=True, default=list)),
                ('images', models.JSONField(blank=True, default=list, help_text='List of {"url": ..., "alt": ...}')),
                ('is_available', models.BooleanField(db_index=True, default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'products',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='product',
            index=models.Index(fields=['category', 'is_available'], name='products_categor_5f1d2a_idx'),
        ),
        migrations.AddIndex(
            model_name='product',
            index=models.Index(fields=['quantity'], name='products_quantit_8b3e4c_idx'),
        ),
    ]
