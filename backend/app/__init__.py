"""
NoteMate Backend — Application Package Initializer
===================================================

What: Marks the `app` directory as a Python package.
Why:  Enables module imports like `from app.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by pytest and uvicorn.

Architecture Note:
    The backend is a thin HTTP shell around an in-process analytics engine:

    ┌─────────────────────────────────────┐
    │    Routes + Middleware (API Layer)  │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (Recorder / Reporter)    │  ← Counters, derived views
    ├─────────────────────────────────────┤
    │      Models & Schemas (Data)        │  ← Pydantic state + API views
    ├─────────────────────────────────────┤
    │     Snapshot Store (Persistence)    │  ← JSON file, periodic checkpoint
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
