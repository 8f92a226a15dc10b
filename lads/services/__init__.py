"""
External services used by the command layer
"""

from .ai import AiServiceError, GeminiService, parse_structured_reply

__all__ = ['AiServiceError', 'GeminiService', 'parse_structured_reply']
