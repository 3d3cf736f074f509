import json
import threading
from types import SimpleNamespace
from typing import Callable, List, Optional

import pytest

from cdss.medfolio.api.services.conflict_llm import MedicationConflictLLM
from cdss.medfolio.sql_record_store import SQLRecordStore

OPENAI_SETTINGS = {"model": "gpt-4o", "family": "openai", "temperature": 0, "max_tokens": 500, "timeout": 5}


def openai_response(content: Optional[str], prompt_tokens: int = 120, completion_tokens: int = 30):
    """Build an object shaped like an OpenAI chat completion."""
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens),
    )


class FakeOpenAIClient:
    """
    Stand-in for the OpenAI SDK client.

    `reply` is either a fixed string, an exception to raise, or a callable
    receiving the create() kwargs and returning the content.
    """

    def __init__(self, reply):
        self.reply = reply
        self.calls: List[dict] = []
        self._lock = threading.Lock()
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **params):
        with self._lock:
            self.calls.append(params)
        if isinstance(self.reply, BaseException):
            raise self.reply
        content = self.reply(params) if callable(self.reply) else self.reply
        return openai_response(content)


def conflicts_json(text: str) -> str:
    return json.dumps({"conflicts": text})


@pytest.fixture
def make_llm() -> Callable[..., MedicationConflictLLM]:
    def _make(reply, settings=None) -> MedicationConflictLLM:
        client = FakeOpenAIClient(reply)
        return MedicationConflictLLM(client=client, settings=dict(settings or OPENAI_SETTINGS))
    return _make


@pytest.fixture
def store() -> SQLRecordStore:
    return SQLRecordStore({"db_uri": "sqlite://"})


@pytest.fixture
def session_secret() -> bytes:
    return b"test-session-secret-for-medfolio-tests"
