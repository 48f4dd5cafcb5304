"""
Resilient retry service for integration sync operations.

Re-drives failed calls to external systems of record (ERP, CRM, CLM, ...):
- Exponential backoff with jitter for transient failures
- Per-system circuit breakers against cascading failure
- Dead-letter quarantine with manual dismiss/reset

Architecture: Celery-driven batch processor + Redis sync log store + FastAPI admin API
"""

__version__ = "0.1.0"
