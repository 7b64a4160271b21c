"""
ChatSphere Backend: Application Package
=======================================

What: The `chatsphere` package holds the messaging REST API.
Who:  Imported by uvicorn (`chatsphere.main:app`), Alembic and pytest.

Architecture Note:
    The backend follows a layered layout:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │     Services (Business Rules)       │  ← contacts, messages, auth
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes translate HTTP to service calls, services raise application
    exceptions, and the handlers in `main.py` turn those into the JSON
    error envelope.
"""

__version__ = "1.0.0"
