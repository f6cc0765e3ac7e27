"""Write Strategy Selection — pure choice of bulk writer for one batch.

Invariants:
    - An explicit override always wins
    - Without override, batches at or above copy_threshold use COPY
    - Same inputs → same strategy (no capability probing, no IO)
"""

from paradigm.core.domain_types import WriteStrategy

DEFAULT_COPY_THRESHOLD = 2000


def choose_write_strategy(
    row_count: int,
    override: WriteStrategy | str | None = None,
    copy_threshold: int = DEFAULT_COPY_THRESHOLD,
    default: WriteStrategy = WriteStrategy.UNNEST,
) -> WriteStrategy:
    if override is not None:
        return WriteStrategy(override)
    if row_count >= copy_threshold:
        return WriteStrategy.COPY
    return default
