"""Core Layer — pure paradigm logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, infrastructure/, models/ or db/
    - All functions are pure and deterministic

Design Decisions:
    - Functional core separated from imperative shell: the generator, the
      invalidation matrix and the planner are testable without a database
"""
