from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("night_audit", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="BusinessDateRow",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("store_id", models.CharField(max_length=100, unique=True)),
                ("business_date", models.DateField()),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "night_audit_business_date",
            },
        ),
    ]
