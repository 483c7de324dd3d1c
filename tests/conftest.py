"""
Pytest configuration and fixtures for the test suite.

This file is automatically loaded by pytest before running tests.
It points the application at a throwaway public directory and fake Azure
credentials so that importing ``app.main`` never touches the real
environment or network.
"""

import os
import tempfile
from typing import Callable, List

import pytest

# Must be set BEFORE config.settings is imported anywhere
_PUBLIC_DIR = tempfile.mkdtemp(prefix="visionchat-public-")
os.environ["PUBLIC_DIR"] = _PUBLIC_DIR
os.environ["APP_ENV"] = "test"
os.environ["AZURE_OPENAI_KEY"] = "test-key"
os.environ["AZURE_OPENAI_ENDPOINT"] = "https://example.openai.azure.com/"
os.environ["AZURE_OPENAI_DEPLOYMENT_NAME"] = "gpt-4o"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["AUTH_USERNAME"] = "admin"
os.environ["AUTH_PASSWORD"] = "hunter2"

from assistant.core.messages import Message, assistant_message  # noqa: E402
from assistant.errors import ChatError  # noqa: E402


class FakeInvoker:
    """Stands in for CompletionInvoker; replies or raises from a script."""

    def __init__(self, replies: List[object]) -> None:
        self.replies = list(replies)
        self.calls: List[List[Message]] = []

    def complete(self, history: List[Message]) -> Message:
        self.calls.append(list(history))
        reply = self.replies.pop(0)
        if isinstance(reply, ChatError):
            raise reply
        return assistant_message(str(reply))


@pytest.fixture
def public_dir() -> str:
    return _PUBLIC_DIR


@pytest.fixture
def write_upload(public_dir: str) -> Callable[[str, bytes], str]:
    """Write bytes under public/uploads and return the /uploads/<name> reference."""

    def _write(name: str, data: bytes) -> str:
        uploads = os.path.join(public_dir, "uploads")
        os.makedirs(uploads, exist_ok=True)
        with open(os.path.join(uploads, name), "wb") as fh:
            fh.write(data)
        return f"/uploads/{name}"

    return _write


@pytest.fixture
def fake_invoker_factory() -> Callable[..., FakeInvoker]:
    return lambda *replies: FakeInvoker(list(replies))
