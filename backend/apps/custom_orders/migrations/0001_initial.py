# Generated migration for custom_orders app

from decimal import Decimal
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('conversations', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='CustomOrder',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('seller_id', models.CharField(max_length=128)),
                ('seller_name', models.CharField(blank=True, default='', max_length=255)),
                ('buyer_id', models.CharField(max_length=128)),
                ('buyer_name', models.CharField(blank=True, default='', max_length=255)),
                ('item_type', models.CharField(choices=[('physical', 'Physical'), ('digital', 'Digital')], default='physical', max_length=20)),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('shipping_cost', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('grand_total', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('payment_method', models.CharField(choices=[('COD', 'Cash on Delivery'), ('BANK_TRANSFER', 'Bank Transfer')], max_length=20)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('ACCEPTED', 'Accepted'), ('PAID', 'Paid'), ('SHIPPED', 'Shipped'), ('DELIVERED', 'Delivered'), ('CANCELLED', 'Cancelled')], default='PENDING', max_length=20)),
                ('notes', models.TextField(blank=True, null=True)),
                ('valid_until', models.DateTimeField()),
                ('buyer_address', models.TextField(blank=True, null=True)),
                ('buyer_phone', models.CharField(blank=True, max_length=50, null=True)),
                ('tracking_number', models.CharField(blank=True, max_length=100, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('conversation', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='custom_orders', to='conversations.conversation')),
            ],
            options={
                'db_table': 'custom_orders',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='CustomOrderItem',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('position', models.PositiveIntegerField()),
                ('item_id', models.CharField(max_length=128)),
                ('name', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True, null=True)),
                ('quantity', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('unit_price', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('image_url', models.CharField(blank=True, max_length=1000, null=True)),
                ('item_type', models.CharField(choices=[('physical', 'Physical'), ('digital', 'Digital')], default='physical', max_length=20)),
                ('custom_order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='custom_orders.customorder')),
            ],
            options={
                'db_table': 'custom_order_items',
                'ordering': ['position'],
            },
        ),
        migrations.AddIndex(
            model_name='customorder',
            index=models.Index(fields=['buyer_id', '-created_at'], name='custom_ord_buyer_idx'),
        ),
        migrations.AddIndex(
            model_name='customorder',
            index=models.Index(fields=['seller_id', '-created_at'], name='custom_ord_seller_idx'),
        ),
        migrations.AlterUniqueTogether(
            name='customorderitem',
            unique_together={('custom_order', 'position')},
        ),
    ]
