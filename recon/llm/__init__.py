"""LLM collaborators: Groq JSON client, order-line extraction, correction agent."""

from recon.llm.groq_client import LLMError, call_groq_json, normalize_json_payload
from recon.llm.extraction import structurize_order_lines
from recon.llm.validation_agent import GroqValidationAgent

__all__ = [
    'GroqValidationAgent',
    'LLMError',
    'call_groq_json',
    'normalize_json_payload',
    'structurize_order_lines',
]
