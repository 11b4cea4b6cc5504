"""
Marketplace Backend: Application Package
========================================

What: HTTP API for a two-sided freelance marketplace. Clients post projects,
      developers express interest, and both sides exchange messages.
Who:  Imported by uvicorn (`marketplace.main:app`), Alembic and pytest.

Architecture Note:
    The backend keeps the same layered shape throughout:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Security (bearer token, roles)    │  ← who is calling
    ├─────────────────────────────────────┤
    │         Services (CRUD rules)       │  ← validation, ownership checks
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Schemas speak camelCase on the wire; models speak snake_case in the
    database. The schema layer is the only place the two meet.
"""

__version__ = "1.0.0"
