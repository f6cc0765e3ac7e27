"""Boundary Protocols — contracts between the pure core and the IO shell.

Invariants:
    - Core NEVER imports from services/, infrastructure/, models/ or db/
    - Every IO collaborator of the coordinator is reached through one of these types
    - Implementations are injected by the caller (shell or tests)

Design Decisions:
    - Protocol over ABC: structural subtyping; ORM models and fakes both fit
    - Async in Protocol: boundary methods are async because implementations do IO,
      but the core functions that consume their results are never async
"""

from typing import TYPE_CHECKING, Any, Iterable, Protocol, Sequence

from paradigm.core.domain_types import BindingRow, WriteStrategy

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class RootRecord(Protocol):
    id: int
    representation: str
    gloss: str | None


class TemplateRecord(Protocol):
    id: int
    name: str | None
    skeleton: str
    slot_count: int | None


class RootReader(Protocol):
    """Read-only access to roots, owned by the CRUD layer."""
    async def list_all(self) -> Sequence[RootRecord]: ...


class TemplateReader(Protocol):
    """Read-only access to templates (patterns), owned by the CRUD layer."""
    async def list_all(self) -> Sequence[TemplateRecord]: ...


class BulkWriter(Protocol):
    """One bulk insert technique. write() must not commit."""
    strategy: WriteStrategy

    async def write(self, session: "AsyncSession", rows: Sequence[BindingRow]) -> int: ...


class Counter(Protocol):
    def inc(self, amount: float = 1) -> None: ...


class Histogram(Protocol):
    def observe(self, amount: float) -> None: ...


class MetricsSink(Protocol):
    def counter(self, name: str) -> Counter: ...
    def histogram(self, name: str) -> Histogram: ...


class CacheStore(Protocol):
    """Keyed store for derived views named by the invalidation matrix."""
    def get(self, key: str) -> Any | None: ...
    def set(self, key: str, value: Any) -> None: ...
    def invalidate(self, keys: Iterable[str]) -> int: ...
