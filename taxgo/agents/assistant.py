"""
Assistant Gateway (Gemini)

DESIGN DECISION: The gateway never raises to the UI.
Chat failures become a fixed apology, extraction failures become
None. The caller decides what to show; the gateway only talks to
the model.

CRITICAL BOUNDARIES:

1. CHAT:
   - CAN: Explain household-business tax rules, warn about penalties,
     guide the declaration process
   - CANNOT: Advise on tax evasion (enforced by the system instruction)
   - Without an API key: canned demo reply, no network call

2. RECEIPT EXTRACTION:
   - CAN: Read amount, date, description and category off a photo
   - CANNOT: Add anything to the ledger. The result only pre-fills
     the entry form; the user confirms.
   - Without an API key: None, no network call

No retry. A single request is bounded by the configured timeout.
"""

import base64
import binascii
import json
from typing import Any, Optional, Sequence

import google.generativeai as genai
import structlog
from pydantic import ValidationError

from taxgo.audit.logger import AuditLogger
from taxgo.config import GeminiSettings, get_settings
from taxgo.models.chat import ChatMessage, ChatRole
from taxgo.models.ledger import ExpenseCategory, InvoiceExtraction


logger = structlog.get_logger(__name__)


SYSTEM_INSTRUCTION = (
    "Bạn là TaxGo AI, một chuyên gia về thuế hộ kinh doanh tại Việt Nam. "
    "Nhiệm vụ của bạn là giải thích các quy định thuế (Thông tư 40/2021/TT-BTC), "
    "cảnh báo rủi ro phạt, và hướng dẫn kê khai. "
    "Hãy trả lời ngắn gọn, dễ hiểu, giọng điệu chuyên nghiệp và hỗ trợ. "
    "Không đưa ra lời khuyên trốn thuế. Luôn khuyến khích tuân thủ pháp luật."
)

DEMO_REPLY = (
    "Xin chào! Tôi là trợ lý ảo TaxGo. Hiện tại tôi đang chạy ở chế độ demo "
    "do chưa có API Key. Tôi có thể giúp bạn giải đáp các thắc mắc về "
    "Thông tư 40, cách tính thuế khoán và kê khai thuế."
)

APOLOGY_REPLY = (
    "Xin lỗi, hiện tại tôi không thể kết nối với máy chủ. "
    "Vui lòng thử lại sau."
)

_CATEGORY_VALUES = [category.value for category in ExpenseCategory]

INVOICE_PROMPT = f"""Analyze this receipt/invoice image and extract the following information in JSON format:
1. 'amount': The total monetary amount (number only).
2. 'date': The date of transaction in YYYY-MM-DD format.
3. 'description': A short summary of the items or service.
4. 'category': ONE of the following values based on content: {', '.join(repr(v) for v in _CATEGORY_VALUES)}.

If a field cannot be read, leave it out rather than guessing."""

INVOICE_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "amount": {"type": "NUMBER"},
        "date": {"type": "STRING"},
        "description": {"type": "STRING"},
        "category": {"type": "STRING", "format": "enum", "enum": _CATEGORY_VALUES},
    },
    "required": ["amount", "description", "category"],
}

_GEMINI_ROLES = {
    ChatRole.USER: "user",
    ChatRole.ASSISTANT: "model",
}


def to_gemini_history(history: Sequence[ChatMessage]) -> list[dict]:
    """
    Convert transcript turns to Gemini chat history.

    Gemini requires the history to open with a user turn, so the
    leading assistant greeting (and any other leading assistant
    turns) are dropped.
    """
    turns = list(history)
    while turns and turns[0].role != ChatRole.USER:
        turns.pop(0)
    return [
        {"role": _GEMINI_ROLES[turn.role], "parts": [turn.text]}
        for turn in turns
        if turn.text
    ]


def decode_image_payload(image_base64: str) -> bytes:
    """
    Decode a base64 image, accepting a `data:<mime>;base64,` prefix.

    Raises ValueError on malformed input.
    """
    payload = image_base64.strip()
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 image data: {e}") from e


def parse_extraction(text: str) -> Optional[InvoiceExtraction]:
    """Parse the model's JSON reply. Returns None when unusable."""
    text = (text or "").strip()
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        return None
    try:
        data = json.loads(text[start:end])
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    try:
        return InvoiceExtraction.model_validate(data)
    except ValidationError:
        return None


class AssistantGateway:
    """
    The only component that talks to Gemini.

    Models are created lazily on first use so that constructing the
    gateway (and the whole app) never needs network access.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        chat_model: Optional[Any] = None,
        vision_model: Optional[Any] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        """
        Args:
            settings: Gemini settings, defaults to the global settings
            chat_model: Pre-built chat model (tests inject fakes)
            vision_model: Pre-built extraction model
            audit_logger: Receives external service errors
        """
        self._settings = settings or get_settings().gemini
        self._chat_model = chat_model
        self._vision_model = vision_model
        self._audit = audit_logger
        self._configured = False

    @property
    def is_demo_mode(self) -> bool:
        """True when no API key is configured."""
        return not self._settings.is_configured

    @property
    def _request_options(self) -> dict:
        return {"timeout": self._settings.request_timeout_seconds}

    def _configure_genai(self) -> None:
        if not self._configured:
            genai.configure(api_key=self._settings.api_key)
            self._configured = True

    def _get_chat_model(self) -> Any:
        if self._chat_model is None:
            self._configure_genai()
            self._chat_model = genai.GenerativeModel(
                model_name=self._settings.model_name,
                system_instruction=SYSTEM_INSTRUCTION,
                generation_config={
                    "temperature": self._settings.temperature,
                    "max_output_tokens": self._settings.max_tokens,
                },
            )
        return self._chat_model

    def _get_vision_model(self) -> Any:
        if self._vision_model is None:
            self._configure_genai()
            self._vision_model = genai.GenerativeModel(
                model_name=self._settings.model_name,
            )
        return self._vision_model

    def _report_failure(self, operation: str, error: Exception) -> None:
        logger.error(
            "gemini_request_failed",
            operation=operation,
            error_type=type(error).__name__,
            error=str(error),
        )
        if self._audit is not None:
            self._audit.log_external_service_error(
                service="gemini",
                operation=operation,
                error_message=f"{type(error).__name__}: {error}",
            )

    async def send_chat_message(
        self,
        history: Sequence[ChatMessage],
        new_message: str,
    ) -> str:
        """
        Ask the tax assistant a question.

        Args:
            history: Prior transcript turns, NOT including `new_message`
            new_message: The user's question

        Returns:
            The reply text, the demo reply without an API key, or the
            apology on any failure.
        """
        if self.is_demo_mode:
            logger.info("chat_demo_reply")
            return DEMO_REPLY

        try:
            chat = self._get_chat_model().start_chat(history=to_gemini_history(history))
            response = await chat.send_message_async(
                new_message,
                request_options=self._request_options,
            )
            text = (response.text or "").strip()
        except Exception as e:
            self._report_failure("chat", e)
            return APOLOGY_REPLY

        if not text:
            logger.warning("chat_empty_reply")
            return APOLOGY_REPLY
        return text

    async def analyze_invoice_image(
        self,
        image_base64: str,
        mime_type: str = "image/jpeg",
    ) -> Optional[InvoiceExtraction]:
        """
        Extract receipt fields from a photo.

        Returns None without an API key, on transport failure, or
        when the reply is not JSON matching InvoiceExtraction.
        """
        if self.is_demo_mode:
            logger.warning("invoice_scan_unavailable", reason="no API key")
            return None

        try:
            image_bytes = decode_image_payload(image_base64)
        except ValueError as e:
            logger.warning("invoice_scan_bad_payload", error=str(e))
            return None

        try:
            response = await self._get_vision_model().generate_content_async(
                [
                    {"mime_type": mime_type, "data": image_bytes},
                    INVOICE_PROMPT,
                ],
                generation_config={
                    "temperature": 0.0,
                    "response_mime_type": "application/json",
                    "response_schema": INVOICE_RESPONSE_SCHEMA,
                },
                request_options=self._request_options,
            )
            text = response.text
        except Exception as e:
            self._report_failure("analyze_invoice", e)
            return None

        extraction = parse_extraction(text)
        if extraction is None:
            logger.warning("invoice_scan_unparsable", reply=(text or "")[:200])
        return extraction
