"""
Tests for the EventBus — publishing, listeners, replay and snapshots.
"""

import threading

from hostplane.core.services.event_bus import (
    KERNEL_OUTCOME,
    KERNEL_STATUS,
    LOCALE_OUTCOME,
    LOCALE_STATUS,
    EventBus,
)


class TestPublish:
    def test_event_fields(self):
        b = EventBus()
        event = b.publish(LOCALE_STATUS, key="locale", success=False, data={"errors": {"current": "x"}})
        assert event["v"] == 1
        assert event["seq"] == 1
        assert event["type"] == "locale:status"
        assert event["key"] == "locale"
        assert event["success"] is False
        assert event["data"] == {"errors": {"current": "x"}}
        assert isinstance(event["ts"], float)

    def test_seq_is_monotonic(self):
        b = EventBus()
        seqs = [b.publish(KERNEL_OUTCOME)["seq"] for _ in range(5)]
        assert seqs == [1, 2, 3, 4, 5]
        assert b.seq == 5

    def test_data_defaults_to_empty(self):
        assert EventBus().publish(KERNEL_STATUS)["data"] == {}

    def test_concurrent_publishers_get_unique_seq(self):
        b = EventBus(buffer_size=1000)
        seen: list[int] = []
        lock = threading.Lock()

        def _pub():
            for _ in range(50):
                seq = b.publish(LOCALE_OUTCOME)["seq"]
                with lock:
                    seen.append(seq)

        threads = [threading.Thread(target=_pub) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert sorted(seen) == list(range(1, 201))


class TestListeners:
    def test_listener_receives_events(self):
        b = EventBus()
        got = []
        b.add_listener(got.append)
        b.publish(LOCALE_STATUS, key="locale")
        b.publish(LOCALE_OUTCOME, key="locale")
        assert [e["type"] for e in got] == [LOCALE_STATUS, LOCALE_OUTCOME]

    def test_raising_listener_does_not_break_publish(self):
        b = EventBus()
        got = []

        def _broken(event):
            raise RuntimeError("observer went away")

        b.add_listener(_broken)
        b.add_listener(got.append)
        event = b.publish(KERNEL_STATUS, key="kernel")
        assert got == [event]

    def test_unsubscribe(self):
        b = EventBus()
        got = []
        remove = b.add_listener(got.append)
        assert b.subscriber_count == 1
        remove()
        remove()
        b.publish(KERNEL_STATUS)
        assert got == []
        assert b.subscriber_count == 0


class TestSubscribe:
    def test_replays_since(self):
        b = EventBus()
        for _ in range(3):
            b.publish(LOCALE_OUTCOME, key="locale")
        events = list(b.subscribe(since=1, idle_timeout=0.01))
        assert [e["seq"] for e in events] == [2, 3]

    def test_fresh_subscriber_gets_latest_snapshot(self):
        b = EventBus()
        b.publish(LOCALE_STATUS, key="locale", data={"n": 1})
        b.publish(KERNEL_STATUS, key="kernel")
        b.publish(LOCALE_STATUS, key="locale", data={"n": 2})
        b.publish(LOCALE_OUTCOME, key="locale")
        events = list(b.subscribe(idle_timeout=0.01))
        assert [(e["type"], e["seq"]) for e in events] == [(KERNEL_STATUS, 2), (LOCALE_STATUS, 3)]
        assert events[1]["data"] == {"n": 2}

    def test_stale_since_falls_back_to_snapshot(self):
        b = EventBus(buffer_size=2)
        b.publish(LOCALE_STATUS, key="locale")
        for _ in range(3):
            b.publish(LOCALE_OUTCOME, key="locale")
        events = list(b.subscribe(since=1, idle_timeout=0.01))
        assert [e["seq"] for e in events] == [1]

    def test_live_events_after_replay(self):
        b = EventBus()
        b.publish(KERNEL_STATUS, key="kernel")
        gen = b.subscribe(idle_timeout=1.0)
        assert next(gen)["type"] == KERNEL_STATUS
        b.publish(KERNEL_OUTCOME, key="kernel")
        assert next(gen)["type"] == KERNEL_OUTCOME
        gen.close()
        assert b.subscriber_count == 0

    def test_full_queue_drops_subscriber(self):
        b = EventBus(subscriber_queue_size=1)
        b.publish(KERNEL_STATUS, key="kernel")
        gen = b.subscribe(idle_timeout=0.01)
        assert next(gen)["seq"] == 1
        b.publish(KERNEL_OUTCOME)
        b.publish(KERNEL_OUTCOME)
        assert b.subscriber_count == 0
        gen.close()


class TestSnapshot:
    def test_only_status_types_with_key(self):
        b = EventBus()
        b.publish(LOCALE_STATUS, key="locale")
        b.publish(LOCALE_OUTCOME, key="locale")
        b.publish(KERNEL_STATUS)
        snap = b.snapshot()
        assert list(snap) == ["locale"]
        assert snap["locale"]["type"] == LOCALE_STATUS
