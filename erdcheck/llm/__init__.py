"""Diagram generator adapters."""

from .runner import GeneratorError, LLMRequest, LLMRunner, TransportError, strip_code_fences

__all__ = ["GeneratorError", "LLMRequest", "LLMRunner", "TransportError", "strip_code_fences"]
