"""Tests for the command dispatcher."""

import pytest

from phonesecure.models.message import MessageStatus, ServerCommand
from phonesecure.services.dispatcher import CommandDispatcher, InvalidCommandError
from phonesecure.services.log_port import InMemoryLogPort, TransportError


class BusyProbe(InMemoryLogPort):
    """Records whether the dispatcher reported itself busy during each call."""

    def __init__(self) -> None:
        super().__init__()
        self.dispatcher = None
        self.busy_during: list[tuple[str, bool]] = []

    async def append(self, channel, record):
        self.busy_during.append(("append", self.dispatcher.is_busy))
        return await super().append(channel, record)

    async def write(self, channel, key, record):
        self.busy_during.append(("write", self.dispatcher.is_busy))
        await super().write(channel, key, record)


@pytest.mark.asyncio
async def test_dispatch_appends_then_marks_uploaded(log_port, channel, clock):
    dispatcher = CommandDispatcher(log_port, channel, clock=clock)

    key = await dispatcher.dispatch(ServerCommand.GET_LOCATION)

    assert log_port.operations == [("append", channel, key), ("write", channel, key)]
    assert log_port.records(channel) == {
        key: {
            "key": key,
            "command": "GetLocation",
            "commandTimestamp": clock.now,
            "status": "UPLOADED",
        }
    }
    assert not dispatcher.is_busy
    assert dispatcher.pending_keys == set()


@pytest.mark.asyncio
async def test_observed_status_never_regresses(log_port, channel, clock):
    seen: list[str] = []

    def on_change(snapshot):
        for record in (snapshot or {}).values():
            if not seen or seen[-1] != record["status"]:
                seen.append(record["status"])

    await log_port.subscribe(channel, on_change)
    dispatcher = CommandDispatcher(log_port, channel, clock=clock)

    key = await dispatcher.dispatch("GetLocation")
    await log_port.agent_respond(channel, key, "https://maps?q=1,2", responded_at=clock.now + 5)

    assert seen == ["BEFORE_UPLOADED", "UPLOADED", "DELIVERED"]


@pytest.mark.asyncio
@pytest.mark.parametrize("command", [None, "", "SelfDestruct"])
async def test_invalid_commands_write_nothing(log_port, channel, command):
    dispatcher = CommandDispatcher(log_port, channel)

    with pytest.raises(InvalidCommandError):
        await dispatcher.dispatch(command)

    assert log_port.operations == []
    assert log_port.records(channel) == {}


@pytest.mark.asyncio
async def test_dispatch_accepts_menu_labels(log_port, channel):
    dispatcher = CommandDispatcher(log_port, channel)

    key = await dispatcher.dispatch("Take Selfie")

    assert log_port.records(channel)[key]["command"] == "TakeSelfie"


@pytest.mark.asyncio
async def test_each_dispatch_creates_one_new_key(log_port, channel):
    dispatcher = CommandDispatcher(log_port, channel)

    keys = [await dispatcher.dispatch(command) for command in ServerCommand]

    assert len(set(keys)) == len(ServerCommand)
    assert [op for op, _, _ in log_port.operations] == ["append", "write"] * len(ServerCommand)


@pytest.mark.asyncio
async def test_append_failure_propagates(log_port, channel):
    dispatcher = CommandDispatcher(log_port, channel)
    log_port.fail_next()

    with pytest.raises(TransportError) as exc:
        await dispatcher.dispatch(ServerCommand.GET_SIM_NUMBERS)

    assert exc.value.operation == "append"
    assert log_port.records(channel) == {}
    assert not dispatcher.is_busy


@pytest.mark.asyncio
async def test_status_write_failure_leaves_record_pending(channel):
    class FailingWrite(InMemoryLogPort):
        async def write(self, channel, key, record):
            raise TransportError("write failed: offline", operation="write")

    log_port = FailingWrite()
    dispatcher = CommandDispatcher(log_port, channel)

    with pytest.raises(TransportError):
        await dispatcher.dispatch(ServerCommand.GET_VOICE_NOTE)

    (stored,) = log_port.records(channel).values()
    assert stored["status"] == "BEFORE_UPLOADED"
    assert dispatcher.pending_keys == set()


@pytest.mark.asyncio
async def test_busy_while_dispatch_in_flight(channel):
    log_port = BusyProbe()
    dispatcher = CommandDispatcher(log_port, channel)
    log_port.dispatcher = dispatcher

    await dispatcher.dispatch(ServerCommand.SEND_NOTIFICATION)

    assert log_port.busy_during == [("append", True), ("write", True)]
    assert not dispatcher.is_busy


@pytest.mark.asyncio
async def test_reconcile_promotes_only_stale_pending(log_port, channel, clock):
    stale = await log_port.append(channel, {
        "command": "TakeSelfie",
        "commandTimestamp": clock.now - 120_000,
        "status": "BEFORE_UPLOADED",
    })
    fresh = await log_port.append(channel, {
        "command": "GetLocation",
        "commandTimestamp": clock.now - 5_000,
        "status": "BEFORE_UPLOADED",
    })
    done = await log_port.append(channel, {
        "command": "GetLocation",
        "commandTimestamp": clock.now - 300_000,
        "status": "DELIVERED",
    })
    dispatcher = CommandDispatcher(log_port, channel, clock=clock)

    promoted = await dispatcher.reconcile_pending(max_age_seconds=60)

    records = log_port.records(channel)
    assert promoted == [stale]
    assert records[stale]["status"] == MessageStatus.UPLOADED.value
    assert records[stale]["key"] == stale
    assert records[fresh]["status"] == "BEFORE_UPLOADED"
    assert records[done]["status"] == "DELIVERED"


@pytest.mark.asyncio
async def test_reconcile_disabled_with_zero_age(log_port, channel, clock):
    await log_port.append(channel, {"command": "TakeSelfie", "commandTimestamp": 1, "status": "BEFORE_UPLOADED"})
    dispatcher = CommandDispatcher(log_port, channel, clock=clock)

    assert await dispatcher.reconcile_pending(max_age_seconds=0) == []
    assert [op for op, _, _ in log_port.operations] == ["append"]


@pytest.mark.asyncio
async def test_reconcile_writes_to_storage_slot(log_port, channel, clock):
    await log_port.write(channel, "-slot", {
        "key": "-legacy",
        "command": "TakeSelfie",
        "commandTimestamp": 1,
        "status": "BEFORE_UPLOADED",
    })
    dispatcher = CommandDispatcher(log_port, channel, clock=clock)

    promoted = await dispatcher.reconcile_pending(max_age_seconds=60)

    records = log_port.records(channel)
    assert promoted == ["-slot"]
    assert set(records) == {"-slot"}
    assert records["-slot"]["status"] == "UPLOADED"
    assert records["-slot"]["key"] == "-legacy"
    assert await dispatcher.reconcile_pending(max_age_seconds=60) == []
