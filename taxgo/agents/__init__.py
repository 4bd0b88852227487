"""Gemini-backed assistant."""

from taxgo.agents.assistant import (
    APOLOGY_REPLY,
    DEMO_REPLY,
    AssistantGateway,
)

__all__ = ["APOLOGY_REPLY", "DEMO_REPLY", "AssistantGateway"]
