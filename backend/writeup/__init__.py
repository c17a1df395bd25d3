"""
WriteUp Backend: Application Package Initializer
================================================

What: Marks the `writeup` directory as a Python package.
Why:  Enables imports like `from writeup.config import settings`.
Who:  Used by Python's import system, Alembic, pytest, and uvicorn.

Architecture Note:
    The backend is layered the same way top to bottom:

    ┌─────────────────────────────────────┐
    │        Routes (HTTP boundary)       │  ← request validation, envelopes
    ├─────────────────────────────────────┤
    │   Services (enhance, chat, history) │  ← input checks, privacy gate
    ├─────────────────────────────────────┤
    │  Orchestrator → Registry → Adapters │  ← provider fallback engine
    ├─────────────────────────────────────┤
    │   Config store & history (SQL)      │  ← async SQLAlchemy sessions
    └─────────────────────────────────────┘

    The orchestrator never talks HTTP and never touches the database directly:
    it reads provider configuration through an injected ConfigStore.
"""

__version__ = "1.0.0"
