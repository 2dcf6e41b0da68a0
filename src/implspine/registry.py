"""
Implementor registry with deferred, load-order-independent registration.

Manifesto:
    Fragments (one per crate) and the page controller load in no guaranteed
    order. A fragment must never have to know whether the controller is up.
    The registry answers that question from its own state: before
    initialization tables are queued, after it they go straight to the
    sink. Initialization drains the queue once, in append order, so every
    table reaches the sink exactly once whichever side loaded first.

Architecture:
    ::

        fragment.load(registry)
              │
              ▼
        registry.submit(table)
              │
              ├── _Uninitialized ──► PendingQueue.append(table)     → QUEUED
              │
              └── _Ready ──────────► register(table) ──► sink(table) → DELIVERED
                                                                     / FAILED

        registry.initialize(sink)            (runs at most once)
              │
              ├── state := _Ready(sink)
              ├── for table in PendingQueue.drain():   (append order)
              │       register(table)
              └── PendingQueue retired

Features:
    - Explicit two-state model instead of presence checks on globals
    - Injectable: construct one per page, or use ``default_registry()``
    - Exactly-once drain; a second ``initialize`` re-delivers nothing
    - A raising sink only loses that table; the rest are still delivered
    - Re-entrant lock: appends never interleave and a post-init table
      cannot overtake the drain

Guardrails:
    ❌ DON'T: Call ``register`` before ``initialize``
    ✅ DO: Use ``submit``; it queues until the registry is ready

    ❌ DON'T: Expect ``submit`` to raise when the sink fails
    ✅ DO: Inspect ``registry.failures`` or the returned ``SubmitResult``

Tags:
    registry, deferred-registration, state-machine, pending-queue, implspine

Doc-Types:
    - API Reference
    - Architecture
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from implspine.core.errors import DeliveryError, RegistryNotReadyError, RegistryStateError
from implspine.core.logging import get_logger
from implspine.models import CrateImplementorTable

logger = get_logger(__name__)

Sink = Callable[[CrateImplementorTable], object]


class RegistryState(str, Enum):
    """Lifecycle of a registry. READY is terminal."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"


class SubmitResult(str, Enum):
    """What ``submit`` did with a table."""

    QUEUED = "queued"
    DELIVERED = "delivered"
    FAILED = "failed"


@dataclass
class DeliveryResult:
    """Result of handing one table to the sink."""

    table: CrateImplementorTable
    success: bool
    error: DeliveryError | None = None
    delivered_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def ok(cls, table: CrateImplementorTable) -> DeliveryResult:
        return cls(table=table, success=True)

    @classmethod
    def fail(cls, table: CrateImplementorTable, error: DeliveryError) -> DeliveryResult:
        return cls(table=table, success=False, error=error)


class PendingQueue:
    """Append-only buffer of tables waiting for the registry to initialize.

    ``drain`` hands back every entry exactly once and retires the queue;
    appending to a retired queue raises ``RegistryStateError``.
    """

    def __init__(self) -> None:
        self._entries: list[CrateImplementorTable] = []
        self._retired = False

    @property
    def retired(self) -> bool:
        return self._retired

    def append(self, table: CrateImplementorTable) -> int:
        """Queue a table and return the new queue length."""
        if self._retired:
            raise RegistryStateError("Pending queue has been drained and retired")
        self._entries.append(table)
        return len(self._entries)

    def drain(self) -> list[CrateImplementorTable]:
        """Remove and return all entries in append order, then retire."""
        entries, self._entries = self._entries, []
        self._retired = True
        return entries

    def snapshot(self) -> tuple[CrateImplementorTable, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class _Uninitialized:
    queue: PendingQueue = field(default_factory=PendingQueue)


@dataclass
class _Ready:
    sink: Sink


class ImplementorRegistry:
    """The single sink for all crates' implementor tables on one page.

    Args:
        sink: Default consumer used by ``initialize`` when none is passed

    Example:
        >>> received = []
        >>> registry = ImplementorRegistry()
        >>> registry.submit(CrateImplementorTable({"alpha": []}))
        <SubmitResult.QUEUED: 'queued'>
        >>> _ = registry.initialize(received.append)
        >>> [table.crates for table in received]
        [('alpha',)]
    """

    def __init__(self, sink: Sink | None = None):
        self._default_sink = sink
        self._state: _Uninitialized | _Ready = _Uninitialized()
        self._lock = threading.RLock()
        self._failures: list[DeliveryResult] = []

    @property
    def state(self) -> RegistryState:
        if isinstance(self._state, _Ready):
            return RegistryState.READY
        return RegistryState.UNINITIALIZED

    @property
    def is_ready(self) -> bool:
        return self.state is RegistryState.READY

    @property
    def pending(self) -> tuple[CrateImplementorTable, ...]:
        """Tables queued so far; empty once the registry is ready."""
        with self._lock:
            if isinstance(self._state, _Uninitialized):
                return self._state.queue.snapshot()
            return ()

    @property
    def failures(self) -> list[DeliveryResult]:
        with self._lock:
            return list(self._failures)

    def submit(self, table: CrateImplementorTable) -> SubmitResult:
        """Hand a table to the registry, queueing it if not yet initialized.

        Never raises for sink failures; those are logged and recorded in
        ``failures``.
        """
        with self._lock:
            state = self._state
            if isinstance(state, _Uninitialized):
                depth = state.queue.append(table)
                logger.debug(
                    "fragment_queued",
                    crates=list(table.crates),
                    trait=table.trait_path,
                    pending=depth,
                )
                return SubmitResult.QUEUED

            result = self._deliver(state.sink, table)
            return SubmitResult.DELIVERED if result.success else SubmitResult.FAILED

    def register(self, table: CrateImplementorTable) -> DeliveryResult:
        """Registration entry-point: pass a table straight to the sink.

        Raises:
            RegistryNotReadyError: If ``initialize`` has not run yet
        """
        with self._lock:
            state = self._state
            if not isinstance(state, _Ready):
                raise RegistryNotReadyError().with_context(
                    trait_path=table.trait_path,
                    crates=list(table.crates),
                )
            return self._deliver(state.sink, table)

    def initialize(self, sink: Sink | None = None) -> list[DeliveryResult]:
        """Become ready and drain the pending queue in append order.

        Runs at most once; later calls log a warning and return ``[]``.

        Args:
            sink: Consumer for tables; falls back to the constructor's sink

        Returns:
            One ``DeliveryResult`` per drained table

        Raises:
            RegistryStateError: If no sink was given here or at construction
        """
        with self._lock:
            state = self._state
            if isinstance(state, _Ready):
                logger.warning("registry_already_initialized")
                return []

            target = sink if sink is not None else self._default_sink
            if target is None:
                raise RegistryStateError("initialize() needs a sink")

            self._state = _Ready(target)
            drained = state.queue.drain()
            results = [self.register(table) for table in drained]

            logger.info(
                "registry_initialized",
                drained=len(drained),
                failed=sum(1 for result in results if not result.success),
            )
            return results

    def _deliver(self, sink: Sink, table: CrateImplementorTable) -> DeliveryResult:
        try:
            sink(table)
        except Exception as e:
            error = DeliveryError(f"Sink failed for crates {list(table.crates)}: {e}", cause=e).with_context(
                trait_path=table.trait_path,
                crates=list(table.crates),
            )
            logger.error("delivery_failed", **error.to_dict(), exc_info=True)
            result = DeliveryResult.fail(table, error)
            self._failures.append(result)
            return result

        logger.debug("fragment_delivered", crates=list(table.crates), trait=table.trait_path)
        return DeliveryResult.ok(table)


# Process-wide registry for callers that do not inject one
_default_registry: ImplementorRegistry | None = None
_default_lock = threading.Lock()


def default_registry() -> ImplementorRegistry:
    """Return the process-wide registry, creating it on first use."""
    global _default_registry
    with _default_lock:
        if _default_registry is None:
            _default_registry = ImplementorRegistry()
        return _default_registry


def reset_default_registry() -> None:
    """Discard the process-wide registry (for testing)."""
    global _default_registry
    with _default_lock:
        _default_registry = None


__all__ = [
    "DeliveryResult",
    "ImplementorRegistry",
    "PendingQueue",
    "RegistryState",
    "Sink",
    "SubmitResult",
    "default_registry",
    "reset_default_registry",
]
