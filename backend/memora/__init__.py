"""
Memora Backend — Application Package Initializer
=================================================

What:  Marks the `memora` directory as a Python package.
Who:   Imported by uvicorn (`memora.main:app`), Alembic, and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, auth extraction
    ├─────────────────────────────────────┤
    │         Services (Use Cases)        │  ← Ownership checks, validation
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Attachments are validated by a pure pipeline (signature detector + file
    validator) before the attachment store writes them as BLOBs.
"""

__version__ = "1.0.0"
