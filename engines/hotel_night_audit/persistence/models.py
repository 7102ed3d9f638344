"""
Night Audit Persistence - Models
==================================
NightAuditRecordRow is the seal of a business date. The database
unique constraint on (store_id, business_date) is the last line that
stops a date from being sealed twice.

OverrideLogRow rows are append-only; nothing in the engine deletes them.
"""

from django.db import models


class NightAuditRecordRow(models.Model):
    store_id = models.CharField(max_length=100)
    business_date = models.DateField()
    closed_at = models.DateTimeField()
    closed_by = models.CharField(max_length=255)
    payload = models.JSONField(
        help_text="Full record: statistics, folios, no-shows, check-outs, checklist.",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "night_audit_record"
        ordering = ["store_id", "business_date"]
        constraints = [
            models.UniqueConstraint(
                fields=("store_id", "business_date"),
                name="uq_night_audit_store_date",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.store_id} {self.business_date.isoformat()}"


class OverrideLogRow(models.Model):
    store_id = models.CharField(max_length=100)
    business_date = models.DateField()
    action = models.CharField(max_length=40)
    reason = models.TextField()
    user = models.CharField(max_length=255)
    timestamp = models.DateTimeField()

    class Meta:
        db_table = "night_audit_override_log"
        ordering = ["store_id", "timestamp", "id"]
        indexes = [
            models.Index(fields=["store_id", "business_date"], name="idx_override_store_date"),
        ]

    def __str__(self) -> str:
        return f"{self.action} {self.store_id} {self.business_date.isoformat()}"


class BusinessDateRow(models.Model):
    """
    The store's current business date: the day after the last seal,
    or the reopened day. Written in the same transaction as the record.
    """

    store_id = models.CharField(max_length=100, unique=True)
    business_date = models.DateField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "night_audit_business_date"

    def __str__(self) -> str:
        return f"{self.store_id} {self.business_date.isoformat()}"
