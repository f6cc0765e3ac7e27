"""Database Schema — SQLAlchemy declarative Base shared by models and migrations.

Invariants:
    - Engines and sessions live in infrastructure/database.py (initialized via init_db)

Design Decisions:
    - asyncpg driver for PostgreSQL: the UNNEST and COPY writers rely on it
"""
