import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='MpesaAccount',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('remote_id', models.CharField(max_length=64, unique=True)),
                ('company_business_name', models.CharField(blank=True, default='', max_length=255)),
                ('account_type', models.CharField(blank=True, default='', max_length=20)),
                ('paybill_shortcode', models.CharField(blank=True, default='', max_length=20)),
                ('till_shortcode', models.CharField(blank=True, default='', max_length=20)),
                ('raw', models.JSONField(blank=True, null=True)),
                ('synced_at', models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('total', models.DecimalField(decimal_places=2, max_digits=12)),
                ('currency', models.CharField(default='KES', max_length=10)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('on-hold', 'On hold'), ('processing', 'Processing'), ('completed', 'Completed'), ('cancelled', 'Cancelled'), ('failed', 'Failed')], default='pending', max_length=20)),
                ('payment_method_chosen', models.CharField(choices=[('undecided', 'Undecided'), ('push', 'STK Push'), ('manual', 'Manual')], default='undecided', max_length=20)),
                ('phone_number', models.CharField(blank=True, default='', max_length=20)),
                ('push_request_id', models.CharField(blank=True, default='', max_length=128)),
                ('transaction_id', models.CharField(blank=True, default='', max_length=64)),
                ('payment_data', models.JSONField(blank=True, null=True)),
                ('date_paid', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name='OrderNote',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('note', models.TextField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notes', to='payments.order')),
            ],
            options={
                'ordering': ['created_at', 'id'],
            },
        ),
    ]
