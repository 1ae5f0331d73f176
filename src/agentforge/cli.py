"""CLI: интерактивный чат, история, перевод."""

from __future__ import annotations

import argparse
import atexit
import sys
from collections.abc import Iterable, Iterator
from datetime import date
from pathlib import Path

import structlog

from agentforge import __version__
from agentforge.db.models import ChatMessageRecord, DailySummary
from agentforge.main import App, create_app
from agentforge.providers.types import ChatMessage, ChatRequest
from agentforge.services.errors import map_provider_exception
from agentforge.services.summary import NoMessagesError

log = structlog.get_logger()

DEFAULT_SYSTEM_PROMPT = "你是一个知识问答助手，请根据用户的问题提供准确、有用的回答。"
CHAT_CONTEXT_MESSAGES = 20
HISTORY_LIST_LIMIT = 50

QUIT_COMMANDS = {":q", ":quit", ":exit"}

TRANSLATE_TARGETS = {
    "en": ("英语翻译专家", "英文"),
    "zh": ("中文翻译专家", "中文"),
}

ROLE_NAMES = {"user": "Вы", "assistant": "Ассистент", "system": "Система"}


def _report_error(exc: Exception) -> int:
    pub = map_provider_exception(exc)
    log.warning("command_failed", code=pub.code, err=str(exc))
    print(f"Ошибка: {pub.message}", file=sys.stderr)
    return 1


def _print_messages(messages: Iterable[ChatMessageRecord]) -> None:
    for m in messages:
        ts = m.created_at.strftime("%Y-%m-%d %H:%M:%S")
        print(f"[{ts}] {ROLE_NAMES.get(m.role, m.role)}: {m.content}")
        print()


def _print_summary(summary: DailySummary) -> None:
    print(f"Дата: {summary.summary_date.isoformat()}")
    print(f"Сообщений: {summary.message_count}")
    print(f"Сводка: {summary.summary}")


def _parse_date(value: str) -> date | None:
    try:
        return date.fromisoformat(value)
    except ValueError:
        print("Неверный формат даты, нужен YYYY-MM-DD.", file=sys.stderr)
        return None


def _stream_to_stdout(chunks: Iterator[str]) -> str:
    """Печатает фрагменты по мере прихода. Ctrl+C обрывает запрос, начало ответа остаётся."""
    parts: list[str] = []
    try:
        for chunk in chunks:
            sys.stdout.write(chunk)
            sys.stdout.flush()
            parts.append(chunk)
    except KeyboardInterrupt:
        if hasattr(chunks, "close"):
            chunks.close()
        sys.stdout.write(" [прервано]")
    sys.stdout.write("\n")
    sys.stdout.flush()
    return "".join(parts)


def _list_recent(app: App, limit: int) -> int:
    messages = app.history.recent_messages(limit)
    if not messages:
        print("Сообщений пока нет.")
        return 0
    print(f"=== Последние сообщения ({len(messages)}) ===")
    _print_messages(messages)
    return 0


def _list_by_date(app: App, value: str) -> int:
    d = _parse_date(value)
    if d is None:
        return 2
    messages = app.history.messages_by_date(d)
    if not messages:
        print(f"За {d.isoformat()} сообщений нет.")
        return 0
    print(f"=== {d.isoformat()} ({len(messages)}) ===")
    _print_messages(messages)
    return 0


def _show_today_summary(app: App) -> int:
    today = date.today()
    summary = app.history.get_daily_summary(today)
    if summary is None:
        print("Сводки за сегодня нет, сгенерируйте: agentforge history --summary")
        return 0
    print(f"=== Сводка за сегодня ({today.isoformat()}) ===")
    _print_summary(summary)
    return 0


def _setup_readline(history_file: str) -> None:
    try:
        import readline
    except ImportError:  # нет readline (Windows) -> просто без истории ввода
        return
    path = Path(history_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists():
        try:
            readline.read_history_file(str(path))
        except OSError as e:  # битый или нечитаемый файл -> чат без истории ввода
            log.warning("readline_history_unreadable", path=str(path), err=str(e))
            return
    atexit.register(readline.write_history_file, str(path))


def _print_chat_help() -> None:
    print("Команды:")
    print("  :q, :quit, :exit  выход")
    print("  :h, :help         эта справка")
    print("  :history          последние сообщения из базы")
    print("  :c, :clear        очистить контекст разговора")
    print("  :summary          сводка за сегодня")


def _interactive_chat(app: App, system_prompt: str) -> int:
    _setup_readline(app.settings.history_file)

    recent = app.history.recent_messages(CHAT_CONTEXT_MESSAGES)
    conversation: list[ChatMessage] = [
        ChatMessage(m.role, m.content) for m in recent if m.role in ("user", "assistant") and m.content
    ]
    _print_messages(recent)
    print("AgentForge чат (:help для справки, :q для выхода).")

    while True:
        try:
            line = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return 0

        if not line:
            continue
        if line in QUIT_COMMANDS:
            print("До встречи!")
            return 0
        if line in (":h", ":help"):
            _print_chat_help()
            continue
        if line == ":history":
            _print_messages(app.history.recent_messages(CHAT_CONTEXT_MESSAGES))
            continue
        if line in (":c", ":clear"):
            conversation.clear()
            print("Контекст очищен.")
            continue
        if line == ":summary":
            _show_today_summary(app)
            continue

        app.history.save_user_message(line)
        conversation.append(ChatMessage.user(line))
        request = ChatRequest(system=system_prompt, messages=conversation)

        try:
            answer = _stream_to_stdout(app.provider.chat_stream(request))
        except Exception as e:
            _report_error(e)
            conversation.pop()
            continue

        if answer:
            app.history.save_assistant_message(answer)
            conversation.append(ChatMessage.assistant(answer))


def cmd_chat(args: argparse.Namespace, app: App) -> int:
    """Интерактивный чат (или просмотр истории через флаги)."""
    if args.list:
        return _list_recent(app, CHAT_CONTEXT_MESSAGES)
    if args.date is not None:
        return _list_by_date(app, args.date)
    if args.summary:
        return _show_today_summary(app)
    return _interactive_chat(app, args.system)


def cmd_history(args: argparse.Namespace, app: App) -> int:
    """История сообщений и дневные сводки."""
    if args.summary:
        today = date.today()
        print(f"Генерирую сводку за {today.isoformat()}...")
        try:
            summary = app.summarizer.summarize(today)
        except NoMessagesError as e:
            print(f"Ошибка: {e}", file=sys.stderr)
            return 1
        except Exception as e:
            return _report_error(e)
        print("=== Сводка готова ===")
        _print_summary(summary)
        return 0

    if args.all_summaries:
        summaries = app.history.all_daily_summaries()
        if not summaries:
            print("Сводок пока нет.")
            return 0
        print(f"=== Все сводки ({len(summaries)}) ===")
        for s in summaries:
            _print_summary(s)
            print("---")
        return 0

    if args.count:
        print("=== Статистика ===")
        print(f"Всего сообщений: {app.history.total_count()}")
        print(f"Сегодня: {app.history.count_by_date(date.today())}")
        return 0

    if args.date is not None:
        return _list_by_date(app, args.date)

    return _list_recent(app, HISTORY_LIST_LIMIT)


def cmd_translate(args: argparse.Namespace, app: App) -> int:
    """Перевод текста с потоковым выводом."""
    role, lang = TRANSLATE_TARGETS[args.target]
    system_prompt = app.prompts.render("translator.md", {"role": role, "lang": lang})
    log.debug("translate_system_prompt", prompt=system_prompt)

    try:
        request = ChatRequest(system=system_prompt, messages=[ChatMessage.user(args.text)])
        _stream_to_stdout(app.provider.chat_stream(request))
    except Exception as e:
        return _report_error(e)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="agentforge", description="AgentForge: AI-ассистент в терминале")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_chat = sub.add_parser("chat", help="Интерактивный чат")
    p_chat.add_argument("--system", default=DEFAULT_SYSTEM_PROMPT, help="Свой системный промпт")
    p_chat.add_argument("--list", action="store_true", help="Показать последние сообщения")
    p_chat.add_argument("--date", default=None, help="Сообщения за дату (YYYY-MM-DD)")
    p_chat.add_argument("--summary", action="store_true", help="Показать сводку за сегодня")
    p_chat.set_defaults(func=cmd_chat)

    p_history = sub.add_parser("history", help="История сообщений и сводки")
    p_history.add_argument("--list", action="store_true", help="Последние сообщения (по умолчанию)")
    p_history.add_argument("--date", default=None, help="Сообщения за дату (YYYY-MM-DD)")
    p_history.add_argument("--count", action="store_true", help="Статистика сообщений")
    p_history.add_argument("--summary", action="store_true", help="Сгенерировать сводку за сегодня")
    p_history.add_argument("--all-summaries", action="store_true", help="Все дневные сводки")
    p_history.set_defaults(func=cmd_history)

    p_translate = sub.add_parser("translate", help="Перевести текст")
    p_translate.add_argument("text", help="Текст для перевода")
    p_translate.add_argument(
        "-t",
        "--target",
        choices=sorted(TRANSLATE_TARGETS),
        default="en",
        help="Целевой язык: en или zh (по умолчанию en)",
    )
    p_translate.set_defaults(func=cmd_translate)
    return parser


def main(argv: list[str] | None = None, app: App | None = None) -> int:
    """Точка входа CLI."""
    args = build_parser().parse_args(argv)

    owns_app = app is None
    if app is None:
        app = create_app()
    try:
        return int(args.func(args, app))
    finally:
        if owns_app:
            app.close()


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
