"""Tests for the deferred-registration registry.

Covers:
- Queueing before initialization and draining in append order
- Direct delivery after initialization
- Exactly-once drain when initialize runs twice
- Interleavings of pre- and post-init fragments
- Sink failures isolated to the failing table
"""

import itertools
import threading
from unittest.mock import MagicMock

import pytest

from implspine.core.errors import DeliveryError, RegistryNotReadyError, RegistryStateError
from implspine.index import ImplementorIndex
from implspine.registry import (
    ImplementorRegistry,
    PendingQueue,
    RegistryState,
    SubmitResult,
    default_registry,
    reset_default_registry,
)


def _crates(sink: MagicMock) -> list[str]:
    return [call.args[0].crates[0] for call in sink.call_args_list]


# ===========================================================================
# PendingQueue
# ===========================================================================


class TestPendingQueue:
    def test_drain_returns_entries_in_append_order(self, make_table):
        queue = PendingQueue()
        alpha, gamma = make_table("alpha"), make_table("gamma")
        assert queue.append(alpha) == 1
        assert queue.append(gamma) == 2

        assert queue.drain() == [alpha, gamma]
        assert len(queue) == 0
        assert queue.retired is True

    def test_append_after_drain_raises(self, make_table):
        queue = PendingQueue()
        queue.drain()
        with pytest.raises(RegistryStateError):
            queue.append(make_table("late"))

    def test_drain_twice_returns_nothing_new(self, make_table):
        queue = PendingQueue()
        queue.append(make_table("alpha"))
        queue.drain()
        assert queue.drain() == []


# ===========================================================================
# Scenarios
# ===========================================================================


class TestRegistryScenarios:
    def test_fragment_before_controller(self, make_table):
        registry = ImplementorRegistry()
        alpha = make_table("alpha", "alpha::Token")

        assert registry.submit(alpha) is SubmitResult.QUEUED
        assert registry.pending == (alpha,)
        assert registry.state is RegistryState.UNINITIALIZED

        sink = MagicMock()
        results = registry.initialize(sink)

        sink.assert_called_once_with(alpha)
        assert [r.success for r in results] == [True]
        assert registry.pending == ()
        assert registry.state is RegistryState.READY

    def test_controller_before_fragment(self, make_table):
        sink = MagicMock()
        registry = ImplementorRegistry()
        registry.initialize(sink)

        beta = make_table("beta")
        assert registry.submit(beta) is SubmitResult.DELIVERED

        sink.assert_called_once_with(beta)
        assert registry.pending == ()

    def test_pre_init_fragments_drain_in_order(self, make_table):
        registry = ImplementorRegistry()
        registry.submit(make_table("alpha"))
        registry.submit(make_table("gamma"))
        assert [t.crates[0] for t in registry.pending] == ["alpha", "gamma"]

        sink = MagicMock()
        registry.initialize(sink)
        assert _crates(sink) == ["alpha", "gamma"]


# ===========================================================================
# Lifecycle
# ===========================================================================


class TestRegistryLifecycle:
    def test_initialize_twice_does_not_redeliver(self, make_table):
        sink = MagicMock()
        registry = ImplementorRegistry(sink=sink)
        registry.submit(make_table("alpha"))

        assert len(registry.initialize()) == 1
        assert registry.initialize() == []
        assert sink.call_count == 1

    def test_second_initialize_keeps_first_sink(self, make_table):
        first, second = MagicMock(), MagicMock()
        registry = ImplementorRegistry()
        registry.initialize(first)
        registry.initialize(second)

        registry.submit(make_table("beta"))
        first.assert_called_once()
        second.assert_not_called()

    def test_initialize_without_sink_raises(self):
        registry = ImplementorRegistry()
        with pytest.raises(RegistryStateError):
            registry.initialize()
        assert registry.state is RegistryState.UNINITIALIZED

    def test_register_before_initialize_raises(self, make_table):
        registry = ImplementorRegistry()
        with pytest.raises(RegistryNotReadyError) as exc_info:
            registry.register(make_table("alpha"))
        assert exc_info.value.to_dict()["category"] == "REGISTRY"

    def test_register_after_initialize_delivers(self, make_table):
        sink = MagicMock()
        registry = ImplementorRegistry(sink=sink)
        registry.initialize()

        result = registry.register(make_table("beta"))
        assert result.success is True
        sink.assert_called_once()

    def test_constructor_sink_used_as_default(self, make_table):
        sink = MagicMock()
        registry = ImplementorRegistry(sink=sink)
        registry.submit(make_table("alpha"))
        registry.initialize()
        sink.assert_called_once()

    def test_explicit_sink_overrides_constructor_sink(self, make_table):
        default, explicit = MagicMock(), MagicMock()
        registry = ImplementorRegistry(sink=default)
        registry.submit(make_table("alpha"))
        registry.initialize(explicit)
        explicit.assert_called_once()
        default.assert_not_called()

    def test_initialize_with_empty_index(self, make_table):
        index = ImplementorIndex()
        registry = ImplementorRegistry()
        registry.submit(make_table("alpha"))

        results = registry.initialize(index)
        assert [result.success for result in results] == [True]
        assert registry.is_ready
        assert index.crates("core::ops::Drop") == ["alpha"]

    def test_empty_index_overrides_constructor_sink(self, make_table):
        default = MagicMock()
        index = ImplementorIndex()
        registry = ImplementorRegistry(sink=default)
        registry.submit(make_table("alpha"))

        registry.initialize(index)
        default.assert_not_called()
        assert index.crates("core::ops::Drop") == ["alpha"]


# ===========================================================================
# Ordering and interleavings
# ===========================================================================


class TestInterleavings:
    CRATES = ["alpha", "beta", "gamma", "delta"]

    @pytest.mark.parametrize("init_at", range(5))
    def test_final_crate_set_independent_of_init_point(self, make_table, init_at):
        sink = MagicMock()
        registry = ImplementorRegistry(sink=sink)

        for position, crate in enumerate(self.CRATES):
            if position == init_at:
                registry.initialize()
            registry.submit(make_table(crate))
        if init_at == len(self.CRATES):
            registry.initialize()

        delivered = _crates(sink)
        assert sorted(delivered) == sorted(self.CRATES)
        assert len(delivered) == len(self.CRATES)
        # Pre-init crates come first, in submission order
        assert delivered[:init_at] == self.CRATES[:init_at]

    def test_every_permutation_delivers_each_crate_once(self, make_table):
        for order in itertools.permutations(self.CRATES[:3]):
            sink = MagicMock()
            registry = ImplementorRegistry(sink=sink)
            registry.submit(make_table(order[0]))
            registry.initialize()
            for crate in order[1:]:
                registry.submit(make_table(crate))
            assert _crates(sink) == list(order)

    def test_concurrent_submits_are_all_queued(self, make_table):
        registry = ImplementorRegistry()
        tables = [make_table(f"crate{i}") for i in range(50)]

        threads = [threading.Thread(target=registry.submit, args=(table,)) for table in tables]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(registry.pending) == 50
        sink = MagicMock()
        registry.initialize(sink)
        assert sorted(_crates(sink)) == sorted(t.crates[0] for t in tables)

    def test_sink_may_submit_reentrantly(self, make_table):
        registry = ImplementorRegistry()
        received = []

        def sink(table):
            received.append(table.crates[0])
            if table.crates[0] == "alpha":
                registry.submit(make_table("follow-up"))

        registry.submit(make_table("alpha"))
        registry.submit(make_table("gamma"))
        registry.initialize(sink)

        assert received == ["alpha", "follow-up", "gamma"]


# ===========================================================================
# Failures
# ===========================================================================


class TestSinkFailures:
    def test_failing_table_does_not_block_others(self, make_table):
        received = []

        def sink(table):
            if table.crates[0] == "broken":
                raise RuntimeError("renderer exploded")
            received.append(table.crates[0])

        registry = ImplementorRegistry(sink=sink)
        registry.submit(make_table("alpha"))
        registry.submit(make_table("broken"))
        registry.submit(make_table("gamma"))

        results = registry.initialize()

        assert received == ["alpha", "gamma"]
        assert [r.success for r in results] == [True, False, True]
        assert isinstance(results[1].error, DeliveryError)
        assert isinstance(results[1].error.__cause__, RuntimeError)
        assert len(registry.failures) == 1

    def test_submit_reports_failure_without_raising(self, make_table):
        registry = ImplementorRegistry(sink=MagicMock(side_effect=ValueError("nope")))
        registry.initialize()

        assert registry.submit(make_table("beta")) is SubmitResult.FAILED
        assert registry.failures[0].table.crates == ("beta",)


# ===========================================================================
# Process-wide registry
# ===========================================================================


class TestDefaultRegistry:
    def test_default_registry_is_shared(self):
        assert default_registry() is default_registry()

    def test_reset_creates_fresh_registry(self, make_table):
        first = default_registry()
        first.submit(make_table("alpha"))
        reset_default_registry()

        second = default_registry()
        assert second is not first
        assert second.pending == ()
