"""История чата: сохранение сообщений, выборки по датам, дневные сводки."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, time, timedelta

import structlog
from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from agentforge.db.models import ChatMessageRecord, DailySummary, now_local

log = structlog.get_logger()


def _day_bounds(d: date) -> tuple[datetime, datetime]:
    start = datetime.combine(d, time.min)
    return start, start + timedelta(days=1)


class ChatHistoryService:
    """Хранилище истории поверх SQLAlchemy.

    Сообщения храним вечно; сводка одна на дату (повторная генерация
    перезаписывает существующую строку).
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        clock: Callable[[], datetime] = now_local,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    def _save(self, role: str, content: str) -> ChatMessageRecord:
        session: Session = self._session_factory()
        try:
            msg = ChatMessageRecord(role=role, content=content, created_at=self._clock())
            session.add(msg)
            session.commit()
            return msg
        finally:
            session.close()

    def save_user_message(self, content: str) -> ChatMessageRecord:
        return self._save("user", content)

    def save_assistant_message(self, content: str) -> ChatMessageRecord:
        return self._save("assistant", content)

    def recent_messages(self, limit: int) -> list[ChatMessageRecord]:
        """Последние `limit` сообщений, по возрастанию времени."""
        session: Session = self._session_factory()
        try:
            rows = session.scalars(
                select(ChatMessageRecord)
                .order_by(ChatMessageRecord.created_at.desc(), ChatMessageRecord.id.desc())
                .limit(limit)
            ).all()
            return list(reversed(rows))
        finally:
            session.close()

    def messages_by_date(self, d: date) -> list[ChatMessageRecord]:
        start, end = _day_bounds(d)
        session: Session = self._session_factory()
        try:
            return list(
                session.scalars(
                    select(ChatMessageRecord)
                    .where(ChatMessageRecord.created_at >= start, ChatMessageRecord.created_at < end)
                    .order_by(ChatMessageRecord.created_at.asc(), ChatMessageRecord.id.asc())
                ).all()
            )
        finally:
            session.close()

    def count_by_date(self, d: date) -> int:
        start, end = _day_bounds(d)
        session: Session = self._session_factory()
        try:
            n = session.scalar(
                select(func.count(ChatMessageRecord.id)).where(
                    ChatMessageRecord.created_at >= start,
                    ChatMessageRecord.created_at < end,
                )
            )
            return int(n or 0)
        finally:
            session.close()

    def total_count(self) -> int:
        session: Session = self._session_factory()
        try:
            return int(session.scalar(select(func.count(ChatMessageRecord.id))) or 0)
        finally:
            session.close()

    def get_daily_summary(self, d: date) -> DailySummary | None:
        session: Session = self._session_factory()
        try:
            return session.scalars(
                select(DailySummary).where(DailySummary.summary_date == d)
            ).one_or_none()
        finally:
            session.close()

    def all_daily_summaries(self) -> list[DailySummary]:
        session: Session = self._session_factory()
        try:
            return list(
                session.scalars(select(DailySummary).order_by(DailySummary.summary_date.desc())).all()
            )
        finally:
            session.close()

    def upsert_daily_summary(self, d: date, text: str, message_count: int) -> DailySummary:
        session: Session = self._session_factory()
        try:
            now = self._clock()
            row = session.scalars(
                select(DailySummary).where(DailySummary.summary_date == d)
            ).one_or_none()
            if row is None:
                row = DailySummary(
                    summary_date=d,
                    summary=text,
                    message_count=message_count,
                    created_at=now,
                    updated_at=now,
                )
                session.add(row)
            else:
                row.summary = text
                row.message_count = message_count
                row.updated_at = now
            session.commit()
            log.info("daily_summary_saved", date=d.isoformat(), message_count=message_count)
            return row
        finally:
            session.close()
