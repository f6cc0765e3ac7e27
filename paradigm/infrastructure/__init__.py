"""Infrastructure Layer — database sessions, logging, metrics and cache stores.

Invariants:
    - Infrastructure never imports from services/
    - Database failures leave this layer as PersistenceError
"""
