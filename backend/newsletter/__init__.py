"""
Newsletter Backend: Application Package
=======================================

What: Subscription and newsletter publishing service.
Who:  Imported by uvicorn (`newsletter.main:app`), Alembic, pytest and the CLI.

Layers:

    ┌─────────────────────────────────────┐
    │           Routes (HTTP)             │  ← status codes, forms, headers
    ├─────────────────────────────────────┤
    │     Services (workflows, email)     │  ← subscribe, confirm, publish
    ├─────────────────────────────────────┤
    │   Domain / Models / Schemas (data)  │  ← validated values, ORM, pydantic
    ├─────────────────────────────────────┤
    │        Database (persistence)       │  ← async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
