"""
AI assistance for Ignition, backed by Google Gemini.
"""

from ignition.ai.client import AIClient, strip_code_fence

__all__ = ["AIClient", "strip_code_fence"]
