"""
Hotel Night Audit Engine - Django Persistence
===============================================
ORM-backed AuditStore. Records are sealed in one atomic insert;
reopen logs and deletes inside one transaction.
"""
