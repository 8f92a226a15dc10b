"""
Command layer shared by the shell and the non-interactive CLI
"""

from .dispatcher import CommandDispatcher
from .processor import SYSTEM_PROMPT, CommandError, CommandProcessor
from .result import AiCommandResult, CommandResult, CommandResultType

__all__ = [
    'CommandDispatcher',
    'CommandProcessor',
    'CommandError',
    'SYSTEM_PROMPT',
    'AiCommandResult',
    'CommandResult',
    'CommandResultType',
]
