# Generated migration for orders app

from decimal import Decimal
from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('custom_orders', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='FulfillmentOrder',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('item_index', models.PositiveIntegerField()),
                ('item_id', models.CharField(max_length=128)),
                ('item_name', models.CharField(max_length=255)),
                ('item_image', models.CharField(blank=True, default='', max_length=1000)),
                ('buyer_id', models.CharField(max_length=128)),
                ('buyer_name', models.CharField(blank=True, default='', max_length=255)),
                ('buyer_address', models.TextField(blank=True, null=True)),
                ('buyer_phone', models.CharField(blank=True, max_length=50, null=True)),
                ('seller_id', models.CharField(max_length=128)),
                ('seller_name', models.CharField(blank=True, default='', max_length=255)),
                ('price', models.DecimalField(decimal_places=2, max_digits=12)),
                ('quantity', models.PositiveIntegerField()),
                ('shipping', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('total', models.DecimalField(decimal_places=2, max_digits=12)),
                ('payment_method', models.CharField(choices=[('cod', 'Cash on Delivery'), ('bankTransfer', 'Bank Transfer')], max_length=20)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('ACCEPTED', 'Accepted'), ('PAID', 'Paid'), ('SHIPPED', 'Shipped'), ('DELIVERED', 'Delivered'), ('CANCELLED', 'Cancelled')], default='PENDING', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('custom_order', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='fulfillment_orders', to='custom_orders.customorder')),
            ],
            options={
                'db_table': 'orders',
                'ordering': ['custom_order', 'item_index'],
            },
        ),
        migrations.AddIndex(
            model_name='fulfillmentorder',
            index=models.Index(fields=['buyer_id', '-created_at'], name='orders_buyer_idx'),
        ),
        migrations.AddIndex(
            model_name='fulfillmentorder',
            index=models.Index(fields=['seller_id', '-created_at'], name='orders_seller_idx'),
        ),
        migrations.AlterUniqueTogether(
            name='fulfillmentorder',
            unique_together={('custom_order', 'item_index')},
        ),
    ]
