"""Services Layer — imperative shell around the pure paradigm core.

Invariants:
    - All database I/O of the recompute engine happens here or in infrastructure/
    - Services consume core functions; core never imports services
"""
