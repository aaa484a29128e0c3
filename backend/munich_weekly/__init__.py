"""
Munich Weekly Backend — Application Package
============================================

What: REST backend for the Munich Weekly photography platform.
Who:  Imported by uvicorn (munich_weekly.main:app), Alembic and the test suite.

Layering:

    ┌─────────────────────────────────────┐
    │     Routes (FastAPI routers)        │  ← HTTP shape, status codes, headers
    ├─────────────────────────────────────┤
    │     Services (business rules)       │  ← windows, quotas, ordering, curation
    ├─────────────────────────────────────┤
    │     Models & Schemas                │  ← SQLAlchemy ORM + Pydantic contracts
    ├─────────────────────────────────────┤
    │     Database / Storage              │  ← async sessions, local file store
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
