"""Дневная сводка: пересказ диалогов за день той же моделью."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from agentforge.db.models import ChatMessageRecord, DailySummary
from agentforge.providers.base import LLMProvider
from agentforge.providers.types import ChatMessage, ChatRequest
from agentforge.services.history import ChatHistoryService

SUMMARY_SYSTEM_PROMPT = "你是一个对话总结专家。"

SUMMARY_PROMPT_TEMPLATE = (
    "你是一个对话总结专家。请简洁地总结以下对话的要点：\n"
    "1. 用户主要询问了什么问题？\n"
    "2. AI给出了什么关键回答？\n"
    "请用2-3句话总结。\n"
    "\n"
    "对话内容：\n"
    "{transcript}"
)


def format_transcript(messages: Iterable[ChatMessageRecord]) -> str:
    return "\n\n".join(f"{m.role}: {m.content}" for m in messages)


def build_summary_prompt(transcript: str) -> str:
    return SUMMARY_PROMPT_TEMPLATE.format(transcript=transcript)


class NoMessagesError(ValueError):
    """За дату нет ни одного сообщения."""


class DailySummarizer:
    def __init__(self, provider: LLMProvider, history: ChatHistoryService) -> None:
        self._provider = provider
        self._history = history

    def summarize(self, d: date) -> DailySummary:
        """Генерирует (или перегенерирует) сводку за дату и сохраняет её."""
        messages = self._history.messages_by_date(d)
        if not messages:
            raise NoMessagesError(f"No messages found for date: {d.isoformat()}")

        request = ChatRequest(
            system=SUMMARY_SYSTEM_PROMPT,
            messages=[ChatMessage.user(build_summary_prompt(format_transcript(messages)))],
        )
        text = "".join(self._provider.chat_stream(request)).strip()
        return self._history.upsert_daily_summary(d, text, len(messages))
