import dataclasses

import pytest

from agentforge.providers.errors import InvalidRequestError
from agentforge.providers.types import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    SimpleChatResponse,
    TokenUsage,
)


def test_message_constructors_set_role() -> None:
    assert ChatMessage.user("a").role == "user"
    assert ChatMessage.assistant("b").role == "assistant"
    assert ChatMessage.system("c").role == "system"


def test_message_rejects_unknown_role_and_empty_content() -> None:
    with pytest.raises(InvalidRequestError):
        ChatMessage("tool", "x")
    with pytest.raises(InvalidRequestError):
        ChatMessage.user("")


def test_request_requires_messages() -> None:
    with pytest.raises(InvalidRequestError):
        ChatRequest(messages=[])


def test_request_rejects_non_positive_max_tokens() -> None:
    with pytest.raises(InvalidRequestError):
        ChatRequest(messages=[ChatMessage.user("hi")], max_tokens=0)


def test_request_is_immutable_snapshot() -> None:
    msgs = [ChatMessage.user("hi")]
    req = ChatRequest(messages=msgs, temperature=2.5)
    msgs.append(ChatMessage.assistant("later"))

    assert req.messages == (ChatMessage.user("hi"),)
    assert req.temperature == 2.5
    with pytest.raises(dataclasses.FrozenInstanceError):
        req.model = "x"


def test_request_with_messages_keeps_other_fields() -> None:
    req = ChatRequest(system="s", model="m", messages=[ChatMessage.user("a")])
    req2 = req.with_messages([ChatMessage.user("a"), ChatMessage.assistant("b"), ChatMessage.user("c")])
    assert len(req2.messages) == 3
    assert (req2.system, req2.model) == ("s", "m")
    assert len(req.messages) == 1


def test_token_usage_total_is_computed() -> None:
    usage = TokenUsage.of(10, 5)
    assert usage.total_tokens == 15
    assert TokenUsage.of(None, 4) == TokenUsage(0, 4)


def test_simple_response_has_no_raw_payload() -> None:
    resp = SimpleChatResponse(id="1", content="hi", model="m", stop_reason="end_turn", usage=None)
    assert isinstance(resp, ChatResponse)
    assert resp.raw_response is None
