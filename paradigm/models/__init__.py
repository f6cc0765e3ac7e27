"""ORM Models — SQLAlchemy declarative models for roots, patterns and bindings.

Invariants:
    - All models inherit from Base (db/base.py)
    - Roots and patterns are read-only here; bindings are owned by the recompute engine

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all/autogenerate
"""

from paradigm.models.root import Root  # noqa: F401
from paradigm.models.pattern import Pattern  # noqa: F401
from paradigm.models.root_pattern_binding import RootPatternBinding  # noqa: F401
