# test_event_bus.py
# Description: Publish/subscribe tests with inline dispatch
#
"""
test_event_bus.py
-----------------
"""

import pytest

from shoptrack.event_bus import EventBus, EventType, inline_dispatch


@pytest.fixture
def bus():
    return EventBus(dispatch=inline_dispatch)


def test_emit_reaches_only_matching_subscribers(bus):
    data, settings = [], []
    bus.subscribe(EventType.DATA_CHANGED, data.append)
    bus.subscribe(EventType.SETTINGS_CHANGED, settings.append)

    bus.emit(EventType.DATA_CHANGED, "sales")

    assert data == ["sales"]
    assert settings == []


def test_unsubscribe(bus):
    seen = []
    bus.subscribe(EventType.SETTINGS_CHANGED, seen.append)

    bus.unsubscribe(EventType.SETTINGS_CHANGED, seen.append)
    bus.unsubscribe(EventType.SETTINGS_CHANGED, seen.append)
    bus.emit(EventType.SETTINGS_CHANGED)

    assert seen == []


def test_callback_may_unsubscribe_during_emit(bus):
    calls = []

    def once(data):
        calls.append(data)
        bus.unsubscribe(EventType.DATA_CHANGED, once)

    bus.subscribe(EventType.DATA_CHANGED, once)
    bus.subscribe(EventType.DATA_CHANGED, calls.append)

    bus.emit(EventType.DATA_CHANGED, "a")
    bus.emit(EventType.DATA_CHANGED, "b")

    assert calls == ["a", "a", "b"]


def test_custom_dispatcher_receives_callback_and_data():
    deferred = []
    bus = EventBus(dispatch=lambda cb, data: deferred.append((cb, data)))
    seen = []
    bus.subscribe(EventType.DATA_CHANGED, seen.append)

    bus.emit(EventType.DATA_CHANGED, "products")
    assert seen == []

    for cb, data in deferred:
        cb(data)
    assert seen == ["products"]
