"""Tests for container action log and pending actions buffer."""

import pytest

from devtodo.actions import ContainerActionLog, PendingActionsBuffer
from devtodo.errors import InvalidRequestError


def test_record_keeps_latest_action_per_container():
    log = ContainerActionLog()

    log.record("c1", "stop")
    latest = log.record("c1", "start")
    log.record("c2", "restart")

    assert log.get("c1") == latest
    assert latest.action == "start"
    assert latest.timestamp.tzinfo is not None
    assert sorted(a.container_id for a in log.list()) == ["c1", "c2"]
    assert log.get("c3") is None


def test_record_rejects_unknown_action():
    log = ContainerActionLog()

    with pytest.raises(InvalidRequestError):
        log.record("c1", "destroy")

    assert log.list() == []


def test_buffer_drain_empties():
    buffer = PendingActionsBuffer()
    buffer.extend([{"text": "a"}, {"text": "b"}])
    buffer.extend([{"text": "c"}])

    assert len(buffer) == 3
    assert [a["text"] for a in buffer.peek()] == ["a", "b", "c"]
    assert len(buffer) == 3

    assert [a["text"] for a in buffer.drain()] == ["a", "b", "c"]
    assert len(buffer) == 0
    assert buffer.drain() == []
