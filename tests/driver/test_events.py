"""Tests for the page event bus."""

from flowstate.driver.events import DATA_READY, EventBus


def test_emit_in_order():
    bus = EventBus()
    calls = []
    bus.on(DATA_READY, lambda **p: calls.append(("a", p)))
    bus.on(DATA_READY, lambda **p: calls.append(("b", p)))

    assert bus.emit(DATA_READY, page="x.html") == 2
    assert calls == [("a", {"page": "x.html"}), ("b", {"page": "x.html"})]


def test_once_and_off():
    bus = EventBus()
    calls = []

    def listener(**payload):
        calls.append(payload)

    bus.on(DATA_READY, lambda **p: calls.append("once"), once=True)
    bus.on(DATA_READY, listener)
    bus.emit(DATA_READY)
    bus.emit(DATA_READY)
    assert calls == ["once", {}, {}]

    bus.off(DATA_READY, listener)
    assert bus.emit(DATA_READY) == 0


def test_emit_without_listeners():
    assert EventBus().emit("page:other") == 0
