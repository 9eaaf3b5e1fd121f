"""
Notes Summarizer - Application Package
========================================

Backend that turns pasted text or uploaded documents (PDF, DOCX, images)
into a short summary plus hierarchical key points using Google Gemini,
and keeps a per-user history of the results.

Layers:

    ┌─────────────────────────────────────┐
    │     Routes (API Layer)              │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │     Services (Pipeline)             │  ← validate, extract, summarize, store
    ├─────────────────────────────────────┤
    │     Models & Schemas (Data)         │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │     Database (Persistence)          │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "2.0.0"
