"""
FormRelay Backend
==================

Form-builder and survey backend: accounts, forms and templates, quota-gated
response submission, form assignment, and real-time notifications.

Layers:
    ┌─────────────────────────────────────┐
    │  Routes (FastAPI) + Socket.IO       │  ← HTTP and live-channel concerns
    ├─────────────────────────────────────┤
    │  Services                           │  ← Quota workflow, dispatch, CRUD
    ├─────────────────────────────────────┤
    │  Models & Schemas                   │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │  Database                           │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
