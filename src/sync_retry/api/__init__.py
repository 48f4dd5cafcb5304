"""
FastAPI admin API for the sync retry queue.

- routes.py: /retry-queue endpoints (listings, admin actions, manual trigger)
- health.py: /health endpoint
- dependencies.py: store, circuit registry and service injection
- error_handlers.py: exception -> enveloped HTTP error mapping
- middleware.py: request ID tracing
"""
