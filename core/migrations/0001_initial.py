import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='SiteSetting',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('key', models.CharField(help_text="Dotted setting key, e.g. 'vat.rate'", max_length=100, unique=True, validators=[django.core.validators.RegexValidator(message='Setting key may only contain letters, digits, dots, dashes and underscores', regex='^[A-Za-z0-9_.\\-]+$')])),
                ('value', models.TextField(blank=True, help_text='Raw string value')),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['key'],
            },
        ),
    ]
