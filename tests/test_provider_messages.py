import base64

import pytest

from core.config import GROQ_MAX_IMAGES
from core.errors import ConfigError
from core.types import ConversationTurn, ExecutionPlan
from llm.gemini_client import GeminiClient
from llm.groq_client import GroqClient


HISTORY = [
    ConversationTurn(role="user", content="Screenshots provided"),
    ConversationTurn(role="assistant", content="FINAL ANSWER: 4"),
]


def encoded(name):
    return base64.b64encode(name.encode()).decode("ascii")


def test_groq_vision_messages_cap_images_in_order():
    images = [encoded(f"img{i}") for i in range(GROQ_MAX_IMAGES + 2)]
    client = GroqClient(api_key="test-key")

    messages = client.build_messages("system", "solve", ExecutionPlan.vision(images), HISTORY)

    assert messages[0] == {"role": "system", "content": "system"}
    assert [m["role"] for m in messages[1:3]] == ["user", "assistant"]
    content = messages[-1]["content"]
    assert content[0] == {"type": "text", "text": "solve"}
    urls = [part["image_url"]["url"] for part in content[1:]]
    assert urls == [f"data:image/jpeg;base64,{image}" for image in images[:GROQ_MAX_IMAGES]]


def test_groq_text_messages():
    client = GroqClient(api_key="test-key")

    messages = client.build_messages("system", "solve", ExecutionPlan.text("2+2=?"), [])

    assert messages[-1] == {
        "role": "user",
        "content": "solve\n\nExtracted text from screenshots:\n2+2=?",
    }


def test_groq_requires_key():
    with pytest.raises(ConfigError):
        GroqClient(api_key="")


def test_gemini_contents():
    client = GeminiClient(api_key="test-key")

    contents = client.build_contents("solve", ExecutionPlan.vision([encoded("a"), encoded("b")]), HISTORY)

    assert [c["role"] for c in contents] == ["user", "model", "user"]
    parts = contents[-1]["parts"]
    assert parts[0] == "solve"
    assert parts[1] == {"mime_type": "image/jpeg", "data": b"a"}
    assert parts[2] == {"mime_type": "image/jpeg", "data": b"b"}


def test_gemini_requires_key():
    with pytest.raises(ConfigError):
        GeminiClient(api_key="")
