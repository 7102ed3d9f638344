from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="NightAuditRecordRow",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("store_id", models.CharField(max_length=100)),
                ("business_date", models.DateField()),
                ("closed_at", models.DateTimeField()),
                ("closed_by", models.CharField(max_length=255)),
                ("payload", models.JSONField(help_text="Full record: statistics, folios, no-shows, check-outs, checklist.")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "night_audit_record",
                "ordering": ["store_id", "business_date"],
            },
        ),
        migrations.CreateModel(
            name="OverrideLogRow",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("store_id", models.CharField(max_length=100)),
                ("business_date", models.DateField()),
                ("action", models.CharField(max_length=40)),
                ("reason", models.TextField()),
                ("user", models.CharField(max_length=255)),
                ("timestamp", models.DateTimeField()),
            ],
            options={
                "db_table": "night_audit_override_log",
                "ordering": ["store_id", "timestamp", "id"],
            },
        ),
        migrations.AddConstraint(
            model_name="nightauditrecordrow",
            constraint=models.UniqueConstraint(
                fields=("store_id", "business_date"),
                name="uq_night_audit_store_date",
            ),
        ),
        migrations.AddIndex(
            model_name="overridelogrow",
            index=models.Index(
                fields=["store_id", "business_date"],
                name="idx_override_store_date",
            ),
        ),
    ]
