"""
Shared fixtures.

No test talks to Gemini: the gateway gets fake models that record
what they were sent and return canned replies.
"""

from io import BytesIO
from typing import Optional

import pytest
from PIL import Image, ImageDraw

from taxgo.agents import AssistantGateway
from taxgo.audit import AuditLogger
from taxgo.config import AppSettings, GeminiSettings, get_settings
from taxgo.ledger import LedgerStore


_ENV_VARS = (
    "GEMINI_API_KEY",
    "API_KEY",
    "GEMINI_MODEL_NAME",
    "SEED_DEMO_DATA",
    "LOG_LEVEL",
    "TAXPAYER_NAME",
    "TAXPAYER_TAX_CODE",
)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Fresh settings per test, without the developer's env or .env file."""
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakeResponse:
    def __init__(self, text: Optional[str]):
        self.text = text


class FakeChatSession:
    def __init__(self, model: "FakeChatModel", history: list):
        self._model = model
        self.history = history

    async def send_message_async(self, message, request_options=None):
        self._model.sent.append({"message": message, "request_options": request_options})
        if self._model.gate is not None:
            await self._model.gate.wait()
        if self._model.error is not None:
            raise self._model.error
        return FakeResponse(self._model.reply)


class FakeChatModel:
    """Stands in for genai.GenerativeModel in chat mode."""

    def __init__(self, reply: str = "Thuế khoán được tính trên doanh thu."):
        self.reply = reply
        self.error: Optional[Exception] = None
        self.gate = None
        self.histories: list = []
        self.sent: list = []

    def start_chat(self, history=None):
        self.histories.append(history)
        return FakeChatSession(self, history)


class FakeVisionModel:
    """Stands in for genai.GenerativeModel in extraction mode."""

    def __init__(self, reply: Optional[str] = None):
        self.reply = reply
        self.error: Optional[Exception] = None
        self.calls: list = []
        self.gate = None

    async def generate_content_async(self, contents, generation_config=None, request_options=None):
        self.calls.append({
            "contents": contents,
            "generation_config": generation_config,
            "request_options": request_options,
        })
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return FakeResponse(self.reply)


@pytest.fixture
def gemini_settings():
    return GeminiSettings(api_key="test-key", request_timeout_seconds=5)


@pytest.fixture
def app_settings():
    return AppSettings()


@pytest.fixture
def chat_model():
    return FakeChatModel()


@pytest.fixture
def vision_model():
    return FakeVisionModel(
        reply='{"amount": 250000, "date": "2025-05-12", '
              '"description": "Mua giấy in", "category": "SUPPLIES"}'
    )


@pytest.fixture
def audit_logger():
    return AuditLogger()


@pytest.fixture
def gateway(gemini_settings, chat_model, vision_model, audit_logger):
    return AssistantGateway(
        settings=gemini_settings,
        chat_model=chat_model,
        vision_model=vision_model,
        audit_logger=audit_logger,
    )


@pytest.fixture
def demo_gateway(chat_model, vision_model):
    """Gateway without an API key."""
    return AssistantGateway(
        settings=GeminiSettings(),
        chat_model=chat_model,
        vision_model=vision_model,
    )


@pytest.fixture
def store():
    return LedgerStore()


def make_image_bytes(
    size: tuple[int, int] = (800, 600),
    image_format: str = "PNG",
    mode: str = "RGB",
) -> bytes:
    """A receipt-like picture: light paper with dark lines of 'text'."""
    img = Image.new(mode, size, color="white")
    draw = ImageDraw.Draw(img)
    width, height = size
    for top in range(height // 10, height, max(height // 10, 1)):
        draw.rectangle(
            [width // 10, top, width * 9 // 10, top + max(height // 40, 1)],
            fill="black",
        )
    buffer = BytesIO()
    img.save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def receipt_png():
    return make_image_bytes()


@pytest.fixture
def image_factory():
    return make_image_bytes
