"""Infrastructure layer — SQLite store, persistence adapters, form repository.

This layer depends on stdlib, SQLAlchemy and the domain models it stores.
It must never import from services, commands, or output.
"""
