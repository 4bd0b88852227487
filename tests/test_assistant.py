"""
Tests for the Gemini assistant gateway.

All model calls go to fakes (see conftest); asyncio.run drives the
coroutines.
"""

import asyncio
import base64
from datetime import date
from decimal import Decimal

import pytest

from taxgo.agents import APOLOGY_REPLY, DEMO_REPLY
from taxgo.agents.assistant import (
    INVOICE_RESPONSE_SCHEMA,
    SYSTEM_INSTRUCTION,
    decode_image_payload,
    parse_extraction,
    to_gemini_history,
)
from taxgo.models import ExpenseCategory
from taxgo.models.audit import AuditEventType
from taxgo.models.chat import ChatMessage, ChatRole, ChatTranscript

IMAGE_B64 = base64.b64encode(b"\xff\xd8\xff fake jpeg").decode("ascii")


class TestChat:
    """Tests for send_chat_message."""

    def test_demo_mode_without_key(self, demo_gateway, chat_model):
        """Test the canned reply is returned and no model is called."""
        reply = asyncio.run(demo_gateway.send_chat_message([], "Thuế khoán là gì?"))
        assert reply == DEMO_REPLY
        assert chat_model.sent == []
        assert demo_gateway.is_demo_mode

    def test_reply_passed_through(self, gateway, chat_model):
        chat_model.reply = "  Bạn cần nộp tờ khai theo quý.  "
        reply = asyncio.run(gateway.send_chat_message([], "Khi nào nộp tờ khai?"))
        assert reply == "Bạn cần nộp tờ khai theo quý."
        assert chat_model.sent[0]["message"] == "Khi nào nộp tờ khai?"

    def test_timeout_forwarded(self, gateway, chat_model):
        asyncio.run(gateway.send_chat_message([], "Hỏi"))
        assert chat_model.sent[0]["request_options"] == {"timeout": 5}

    def test_history_forwarded(self, gateway, chat_model):
        """Test prior turns reach the model, minus the opening greeting."""
        transcript = ChatTranscript()
        transcript.append(ChatRole.USER, "Câu 1")
        transcript.append(ChatRole.ASSISTANT, "Trả lời 1")

        asyncio.run(gateway.send_chat_message(transcript.history(), "Câu 2"))

        assert chat_model.histories[0] == [
            {"role": "user", "parts": ["Câu 1"]},
            {"role": "model", "parts": ["Trả lời 1"]},
        ]

    def test_service_error_returns_apology(self, gateway, chat_model, audit_logger):
        """Test a transport failure becomes the apology and is audited."""
        chat_model.error = ConnectionError("network down")
        reply = asyncio.run(gateway.send_chat_message([], "Hỏi"))
        assert reply == APOLOGY_REPLY
        events = audit_logger.events
        assert events[-1].event_type == AuditEventType.EXTERNAL_SERVICE_ERROR
        assert events[-1].details["operation"] == "chat"

    def test_empty_reply_returns_apology(self, gateway, chat_model):
        chat_model.reply = ""
        assert asyncio.run(gateway.send_chat_message([], "Hỏi")) == APOLOGY_REPLY

    def test_persona_forbids_evasion(self):
        assert "Thông tư 40/2021/TT-BTC" in SYSTEM_INSTRUCTION
        assert "trốn thuế" in SYSTEM_INSTRUCTION


class TestGeminiHistory:
    """Tests for to_gemini_history."""

    def test_drops_leading_assistant_turns(self):
        history = [
            ChatMessage(role=ChatRole.ASSISTANT, text="Xin chào"),
            ChatMessage(role=ChatRole.USER, text="Hỏi"),
            ChatMessage(role=ChatRole.ASSISTANT, text="Đáp"),
        ]
        assert [turn["role"] for turn in to_gemini_history(history)] == ["user", "model"]

    def test_greeting_only(self):
        assert to_gemini_history(ChatTranscript().history()) == []


class TestInvoiceExtraction:
    """Tests for analyze_invoice_image."""

    def test_extraction(self, gateway, vision_model):
        """Test a well-formed reply becomes an InvoiceExtraction."""
        result = asyncio.run(gateway.analyze_invoice_image(IMAGE_B64))

        assert result.amount == Decimal("250000")
        assert result.date == date(2025, 5, 12)
        assert result.description == "Mua giấy in"
        assert result.category == ExpenseCategory.SUPPLIES

    def test_request_shape(self, gateway, vision_model):
        """Test the image bytes, schema and timeout are sent."""
        asyncio.run(gateway.analyze_invoice_image(IMAGE_B64, mime_type="image/png"))
        call = vision_model.calls[0]
        image_part = call["contents"][0]
        assert image_part["mime_type"] == "image/png"
        assert image_part["data"] == base64.b64decode(IMAGE_B64)
        assert call["generation_config"]["response_mime_type"] == "application/json"
        assert call["generation_config"]["response_schema"] == INVOICE_RESPONSE_SCHEMA
        assert call["request_options"] == {"timeout": 5}

    def test_data_url_prefix_accepted(self, gateway, vision_model):
        result = asyncio.run(
            gateway.analyze_invoice_image("data:image/jpeg;base64," + IMAGE_B64)
        )
        assert result is not None

    def test_demo_mode_returns_none(self, demo_gateway, vision_model):
        assert asyncio.run(demo_gateway.analyze_invoice_image(IMAGE_B64)) is None
        assert vision_model.calls == []

    def test_service_error_returns_none(self, gateway, vision_model, audit_logger):
        vision_model.error = TimeoutError("deadline exceeded")
        assert asyncio.run(gateway.analyze_invoice_image(IMAGE_B64)) is None
        assert audit_logger.events[-1].event_type == AuditEventType.EXTERNAL_SERVICE_ERROR

    @pytest.mark.parametrize("reply", [
        "not json at all",
        "{broken json",
        '{"description": "no amount", "category": "rent"}',
        '{"amount": -5, "description": "x", "category": "rent"}',
        '[1, 2, 3]',
        None,
    ])
    def test_unusable_reply_returns_none(self, gateway, vision_model, reply):
        vision_model.reply = reply
        assert asyncio.run(gateway.analyze_invoice_image(IMAGE_B64)) is None

    def test_bad_base64_returns_none(self, gateway, vision_model):
        assert asyncio.run(gateway.analyze_invoice_image("%%% not base64")) is None
        assert vision_model.calls == []


class TestParsing:
    """Tests for the reply parser helpers."""

    def test_unknown_category_becomes_other(self):
        result = parse_extraction('{"amount": 10, "description": "x", "category": "FOOD"}')
        assert result.category == ExpenseCategory.OTHER

    def test_json_wrapped_in_prose(self):
        result = parse_extraction('Kết quả: {"amount": 10, "description": "x", "category": "rent"}.')
        assert result.category == ExpenseCategory.RENT

    def test_unreadable_date_dropped(self):
        result = parse_extraction(
            '{"amount": 10, "date": "sometime", "description": "x", "category": "rent"}'
        )
        assert result.date is None

    def test_vietnamese_date_format(self):
        result = parse_extraction(
            '{"amount": 10, "date": "12/05/2025", "description": "x", "category": "rent"}'
        )
        assert result.date == date(2025, 5, 12)

    def test_decode_rejects_garbage(self):
        with pytest.raises(ValueError):
            decode_image_payload("***")
