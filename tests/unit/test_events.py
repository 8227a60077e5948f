"""
Tests for the marketplace activity log.
"""

from marketplace.core import EventLog, EventType


def test_sequence_and_timestamp(clock):
    log = EventLog(clock=clock)

    first = log.log(EventType.USER_REGISTERED, actor_id=1, username="alice")
    clock.advance(seconds=3)
    second = log.log(EventType.ITEM_MINTED, actor_id=1, item_id=1)

    assert (first.sequence, second.sequence) == (1, 2)
    assert second.timestamp == clock.now
    assert first.details == {"username": "alice"}


def test_recent_events_newest_first(clock):
    log = EventLog(clock=clock)
    for n in range(5):
        log.log(EventType.BID_PLACED, actor_id=n)

    assert [e.actor_id for e in log.get_recent_events(2)] == [4, 3]
    assert len(log.get_events()) == 5


def test_clear(clock):
    log = EventLog(clock=clock)
    log.log(EventType.PURCHASE)
    log.clear()

    assert log.get_events() == []
    assert log.log(EventType.PURCHASE).sequence == 1


def test_service_records_activity(service, users, listed_item):
    types = [e.event_type for e in service.recent_activity()]
    assert types[0] == EventType.ITEM_MINTED
    assert types.count(EventType.USER_REGISTERED) == 3
