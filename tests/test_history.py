from datetime import date, datetime

from agentforge.infrastructure.db import create_session_factory
from agentforge.services.history import ChatHistoryService


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _service(engine, clock: Clock) -> ChatHistoryService:
    return ChatHistoryService(create_session_factory(engine), clock=clock)


def test_messages_by_date_uses_day_bounds(engine) -> None:
    clock = Clock(datetime(2026, 2, 17, 23, 59, 59))
    history = _service(engine, clock)
    history.save_user_message("late yesterday")

    clock.now = datetime(2026, 2, 18, 0, 0, 0)
    history.save_user_message("midnight")
    clock.now = datetime(2026, 2, 18, 12, 30)
    history.save_assistant_message("noon answer")
    clock.now = datetime(2026, 2, 19, 0, 0, 0)
    history.save_user_message("next day")

    day = history.messages_by_date(date(2026, 2, 18))
    assert [(m.role, m.content) for m in day] == [("user", "midnight"), ("assistant", "noon answer")]
    assert history.count_by_date(date(2026, 2, 18)) == 2
    assert history.count_by_date(date(2026, 2, 20)) == 0
    assert history.total_count() == 4


def test_recent_messages_returns_tail_in_order(engine) -> None:
    clock = Clock(datetime(2026, 2, 18, 9, 0))
    history = _service(engine, clock)
    for i in range(5):
        clock.now = datetime(2026, 2, 18, 9, i)
        history.save_user_message(f"m{i}")

    assert [m.content for m in history.recent_messages(3)] == ["m2", "m3", "m4"]
    assert len(history.recent_messages(50)) == 5


def test_upsert_daily_summary_overwrites_same_date(engine) -> None:
    clock = Clock(datetime(2026, 2, 18, 20, 0))
    history = _service(engine, clock)

    first = history.upsert_daily_summary(date(2026, 2, 18), "first", 2)
    clock.now = datetime(2026, 2, 18, 21, 0)
    second = history.upsert_daily_summary(date(2026, 2, 18), "second", 4)

    assert second.id == first.id
    stored = history.get_daily_summary(date(2026, 2, 18))
    assert stored.summary == "second"
    assert stored.message_count == 4
    assert stored.created_at == datetime(2026, 2, 18, 20, 0)
    assert stored.updated_at == datetime(2026, 2, 18, 21, 0)
    assert history.get_daily_summary(date(2026, 2, 19)) is None


def test_all_daily_summaries_newest_first(engine) -> None:
    history = _service(engine, Clock(datetime(2026, 2, 20, 8, 0)))
    history.upsert_daily_summary(date(2026, 2, 18), "a", 1)
    history.upsert_daily_summary(date(2026, 2, 19), "b", 1)

    assert [s.summary for s in history.all_daily_summaries()] == ["b", "a"]
