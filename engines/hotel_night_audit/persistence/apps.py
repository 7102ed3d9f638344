"""
Night Audit Persistence - App Configuration
=============================================
Stores Night Audit Records, the override log and the current
business date.

This app:
- Enforces one record per (store, business date)
- Keeps override entries forever
- Moves the business date in the same transaction as a seal or reopen

This app does NOT:
- Decide whether a day may close (engine policies do)
- Store reservations or folios
"""

from django.apps import AppConfig


class NightAuditPersistenceConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "engines.hotel_night_audit.persistence"
    label = "night_audit"
    verbose_name = "Night Audit Records"
