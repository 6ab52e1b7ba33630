"""Database Metadata — the declarative Base shared by models and migrations.

Invariants:
    - Every ORM model and the Alembic env share this single metadata
"""
