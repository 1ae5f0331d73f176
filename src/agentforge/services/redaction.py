"""Редактирование chat-payload перед записью в лог (без сырых текстов)."""

import hashlib

REDACTED_TEXT = "<redacted>"


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def _redacted_text(value: str) -> dict:
    return {"redacted": True, "len": len(value), "sha256": sha256_hex(value)}


def redact_chat_payload(payload: dict) -> dict:
    """Заменяет тексты сообщений (и top-level `system` у Anthropic) на длину + хэш."""
    p = dict(payload)
    msgs = p.get("messages")
    if isinstance(msgs, list):
        out_msgs = []
        for m in msgs:
            if not isinstance(m, dict):
                continue
            content = m.get("content")
            if isinstance(content, str):
                out_msgs.append(
                    {
                        "role": m.get("role"),
                        "content": REDACTED_TEXT,
                        "content_len": len(content),
                        "content_sha256": sha256_hex(content),
                    }
                )
            else:
                out_msgs.append({"role": m.get("role"), "content": REDACTED_TEXT})
        p["messages"] = out_msgs
    if isinstance(p.get("system"), str):
        p["system"] = _redacted_text(p["system"])
    return p
