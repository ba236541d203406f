from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

import pytest

from permflow import (
    InMemoryPermissionHost,
    InvalidCapabilityError,
    NoCapabilitiesError,
    PermissionCoordinator,
    PermissionRecord,
    PromptOutcomeError,
)


def run_async(coro):
    return asyncio.run(coro)


def _make(**host_kwargs):
    host = InMemoryPermissionHost(**host_kwargs)
    coordinator = PermissionCoordinator(host)
    return host, coordinator


async def _collect(stream):
    return [item async for item in stream]


async def _queue_trigger(queue: asyncio.Queue):
    while True:
        item = await queue.get()
        if item is None:
            return
        yield item


async def _empty_trigger():
    return
    yield  # pragma: no cover


class _RecordingMetrics:
    def __init__(self) -> None:
        self.calls: list[tuple[str, int, dict[str, str]]] = []

    def incr(self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None) -> None:
        self.calls.append((name, value, dict(tags or {})))

    def total(self, name: str) -> int:
        return sum(value for metric, value, _ in self.calls if metric == name)


def test_overlapping_requests_share_one_prompt_per_name():
    async def scenario() -> None:
        host, coordinator = _make()
        first = asyncio.create_task(_collect(coordinator.request(["A", "B"])))
        await asyncio.sleep(0)
        second = asyncio.create_task(_collect(coordinator.request(["B", "C"])))
        await asyncio.sleep(0)

        assert host.dispatched == [["A", "B"], ["C"]]

        host.deliver(["A", "B"], [True, False])
        host.deliver(["C"], [True])

        assert await first == [
            PermissionRecord("A", True, False),
            PermissionRecord("B", False, False),
        ]
        assert await second == [
            PermissionRecord("B", False, False),
            PermissionRecord("C", True, False),
        ]

    run_async(scenario())


def test_back_to_back_requests_in_one_loop_step_dedupe():
    async def scenario() -> None:
        host, coordinator = _make()
        gathered = asyncio.gather(
            _collect(coordinator.request(["X"])),
            _collect(coordinator.request(["X"])),
        )
        await asyncio.sleep(0)
        assert host.dispatched == [["X"]]

        host.deliver(["X"], [True])
        assert await gathered == [
            [PermissionRecord("X", True, False)],
            [PermissionRecord("X", True, False)],
        ]

    run_async(scenario())


def test_output_follows_input_order_not_resolution_order():
    async def scenario() -> None:
        host, coordinator = _make()
        task = asyncio.create_task(_collect(coordinator.request(["A", "B", "C"])))
        await asyncio.sleep(0)
        assert host.dispatched == [["A", "B", "C"]]

        host.deliver(["C"], [True])
        host.deliver(["B"], [False])
        host.deliver(["A"], [True])

        assert [record.name for record in await task] == ["A", "B", "C"]

    run_async(scenario())


def test_granted_capability_resolves_without_prompt():
    async def scenario() -> None:
        host, coordinator = _make(granted={"X"})
        records = await _collect(coordinator.request(["X"]))
        assert records == [PermissionRecord("X", True, False)]
        assert host.dispatched == []
        assert not host.has_pending_entry("X")

    run_async(scenario())


def test_ungated_platform_treats_everything_as_granted():
    async def scenario() -> None:
        host, coordinator = _make(api_level=21, revoked={"R"})
        records = await _collect(coordinator.request(["R", "Q"]))
        assert records == [PermissionRecord("R", True, False), PermissionRecord("Q", True, False)]
        assert host.dispatched == []

    run_async(scenario())


def test_policy_revoked_capability_resolves_denied_without_prompt():
    async def scenario() -> None:
        host, coordinator = _make(revoked={"R"})
        records = await _collect(coordinator.request(["R"]))
        assert records == [PermissionRecord("R", False, False)]
        assert host.dispatched == []

    run_async(scenario())


def test_mixed_batch_prompts_only_for_unresolved_names():
    async def scenario() -> None:
        host, coordinator = _make(granted={"G"}, revoked={"R"})
        task = asyncio.create_task(_collect(coordinator.request(["G", "P", "R"])))
        await asyncio.sleep(0)
        assert host.dispatched == [["P"]]

        host.deliver(["P"], [True])
        assert await task == [
            PermissionRecord("G", True, False),
            PermissionRecord("P", True, False),
            PermissionRecord("R", False, False),
        ]

    run_async(scenario())


def test_repeated_name_in_one_request_prompts_once():
    async def scenario() -> None:
        host, coordinator = _make()
        task = asyncio.create_task(_collect(coordinator.request(["A", "A"])))
        await asyncio.sleep(0)
        assert host.dispatched == [["A"]]

        host.deliver(["A"], [False])
        assert await task == [PermissionRecord("A", False, False)] * 2

    run_async(scenario())


def test_empty_request_fails_synchronously():
    host, coordinator = _make()
    with pytest.raises(NoCapabilitiesError):
        coordinator.request([])
    assert host.dispatched == []


def test_invalid_names_fail_synchronously():
    _, coordinator = _make()
    with pytest.raises(InvalidCapabilityError):
        coordinator.request("CAMERA")  # type: ignore[arg-type]
    with pytest.raises(InvalidCapabilityError):
        coordinator.request(["CAMERA", "  "])
    with pytest.raises(InvalidCapabilityError):
        coordinator.request(["CAMERA", 3])  # type: ignore[list-item]


def test_prompt_result_fans_out_and_retires_entries():
    async def scenario() -> None:
        host, coordinator = _make()
        task = asyncio.create_task(_collect(coordinator.request(["A", "B"])))
        await asyncio.sleep(0)
        assert host.has_pending_entry("A")
        assert host.has_pending_entry("B")
        signal_a = host.get_pending_entry("A")
        signal_b = host.get_pending_entry("B")

        coordinator.on_prompt_result(["A", "B"], [True, False])

        assert not host.has_pending_entry("A")
        assert not host.has_pending_entry("B")
        assert signal_a is not None and signal_a.record == PermissionRecord("A", True, False)
        assert signal_b is not None and signal_b.record == PermissionRecord("B", False, False)
        assert await task == [signal_a.record, signal_b.record]

    run_async(scenario())


def test_prompt_result_rejects_malformed_payloads():
    _, coordinator = _make()
    with pytest.raises(PromptOutcomeError):
        coordinator.on_prompt_result(["A"], [True, False])
    with pytest.raises(PromptOutcomeError):
        coordinator.on_prompt_result(["A"], ["yes"])  # type: ignore[list-item]


def test_prompt_result_for_unknown_name_is_logged_and_ignored(caplog):
    _, coordinator = _make()
    with caplog.at_level(logging.WARNING, logger="permflow.coordinator"):
        coordinator.on_prompt_result(["Z"], [True])
    assert "No pending request found for permission Z" in caplog.text


def test_pending_request_waits_for_trigger_before_asking():
    async def scenario() -> None:
        host, coordinator = _make()
        first = asyncio.create_task(_collect(coordinator.request(["A"])))
        await asyncio.sleep(0)

        queue: asyncio.Queue = asyncio.Queue()
        second = asyncio.create_task(
            _collect(coordinator.request(["A"], trigger=_queue_trigger(queue)))
        )
        await asyncio.sleep(0)

        host.deliver(["A"], [True])
        assert await first == [PermissionRecord("A", True, False)]
        await asyncio.sleep(0)
        assert not second.done()

        queue.put_nowait("tap")
        assert await second == [PermissionRecord("A", True, False)]
        assert host.dispatched == [["A"]]

    run_async(scenario())


def test_idle_request_is_ready_without_trigger_item():
    async def scenario() -> None:
        host, coordinator = _make()
        queue: asyncio.Queue = asyncio.Queue()
        task = asyncio.create_task(
            _collect(coordinator.request(["A"], trigger=_queue_trigger(queue)))
        )
        await asyncio.sleep(0)
        assert host.dispatched == [["A"]]

        host.deliver(["A"], [False])
        assert await task == [PermissionRecord("A", False, False)]

    run_async(scenario())


def test_trigger_is_closed_once_the_request_is_ready():
    closed: list[bool] = []

    async def taps():
        try:
            while True:
                yield "tap"
        finally:
            closed.append(True)

    async def scenario() -> None:
        host, coordinator = _make()
        first = asyncio.create_task(_collect(coordinator.request(["A"])))
        await asyncio.sleep(0)

        second = asyncio.create_task(_collect(coordinator.request(["A"], trigger=taps())))
        await asyncio.sleep(0)
        assert closed == [True]

        host.deliver(["A"], [True])
        expected = [PermissionRecord("A", True, False)]
        assert await first == expected
        assert await second == expected

    run_async(scenario())


def test_trigger_ending_while_pending_completes_empty():
    async def scenario() -> None:
        host, coordinator = _make()
        first = asyncio.create_task(_collect(coordinator.request(["A"])))
        await asyncio.sleep(0)

        assert await _collect(coordinator.request(["A"], trigger=_empty_trigger())) == []

        host.deliver(["A"], [True])
        assert await first == [PermissionRecord("A", True, False)]
        assert host.dispatched == [["A"]]

    run_async(scenario())


def test_dispatch_failure_retires_fresh_entries_and_propagates():
    def failing_handler(names):
        raise RuntimeError("prompt ui unavailable")

    async def scenario() -> None:
        host, coordinator = _make(prompt_handler=failing_handler)
        with pytest.raises(RuntimeError, match="prompt ui unavailable"):
            await _collect(coordinator.request(["A", "B"]))
        assert not host.has_pending_entry("A")
        assert not host.has_pending_entry("B")

    run_async(scenario())


def test_closed_entry_drops_record_from_stream():
    async def scenario() -> None:
        host, coordinator = _make()
        task = asyncio.create_task(_collect(coordinator.request(["A", "B"])))
        await asyncio.sleep(0)

        host.deliver(["A"], [True])
        assert host.teardown() == ["B"]
        assert await task == [PermissionRecord("A", True, False)]
        assert len(host.registry) == 0

    run_async(scenario())


def test_should_show_rationale_requires_every_ungranted_name():
    host, coordinator = _make(granted={"G"}, rationale={"A", "B"})
    assert coordinator.should_show_rationale("A", "G") is True
    assert coordinator.should_show_rationale("A", "B") is True
    assert coordinator.should_show_rationale("A", "C") is False
    with pytest.raises(NoCapabilitiesError):
        coordinator.should_show_rationale()

    _, ungated = _make(api_level=10, rationale={"A"})
    assert ungated.should_show_rationale("A") is False


def test_is_granted_and_is_revoked_forward_to_host():
    _, coordinator = _make(granted={"G"}, revoked={"R"})
    assert coordinator.is_granted("G") is True
    assert coordinator.is_granted("R") is False
    assert coordinator.is_revoked("R") is True
    assert coordinator.is_revoked("G") is False


def test_verbose_logging_traces_each_capability(caplog):
    async def scenario() -> None:
        _, coordinator = _make(granted={"A"})
        coordinator.set_logging(True)
        await _collect(coordinator.request(["A"]))

    with caplog.at_level(logging.DEBUG, logger="permflow.coordinator"):
        run_async(scenario())
    assert "Requesting permission A" in caplog.text


def test_quiet_by_default(caplog):
    async def scenario() -> None:
        _, coordinator = _make(granted={"A"})
        await _collect(coordinator.request(["A"]))

    with caplog.at_level(logging.DEBUG, logger="permflow.coordinator"):
        run_async(scenario())
    assert "Requesting permission" not in caplog.text


def test_metrics_count_immediate_dedup_and_prompts():
    async def scenario() -> None:
        metrics = _RecordingMetrics()
        host = InMemoryPermissionHost(granted={"G"}, revoked={"R"})
        coordinator = PermissionCoordinator(host, metrics=metrics)

        first = asyncio.create_task(_collect(coordinator.request(["G", "R", "A", "B"])))
        await asyncio.sleep(0)
        second = asyncio.create_task(_collect(coordinator.request(["A"])))
        await asyncio.sleep(0)
        host.deliver(["A", "B"], [True, False])
        await asyncio.gather(first, second)

        assert metrics.total("permission_immediate_total") == 2
        assert metrics.total("permission_dedup_total") == 1
        assert metrics.total("permission_prompt_batches_total") == 1
        assert metrics.total("permission_prompt_total") == 2
        assert metrics.total("permission_result_total") == 2
        assert ("permission_immediate_total", 1, {"outcome": "revoked"}) in metrics.calls

    run_async(scenario())
