from agentforge.services.redaction import redact_chat_payload


def test_redact_chat_payload_hides_content() -> None:
    payload = {
        "model": "claude-test",
        "max_tokens": 512,
        "system": "you are helpful",
        "messages": [
            {"role": "user", "content": "my secret is 123"},
            {"role": "assistant", "content": "ok"},
        ],
    }
    red = redact_chat_payload(payload)
    assert red["model"] == "claude-test"
    assert red["messages"][0]["content"] == "<redacted>"
    assert red["messages"][0]["content_len"] == len("my secret is 123")
    assert "content_sha256" in red["messages"][1]
    assert red["system"]["redacted"] is True
    assert red["system"]["len"] == len("you are helpful")
    assert payload["messages"][0]["content"] == "my secret is 123"
