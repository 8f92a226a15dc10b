"""
Result types returned by the command dispatcher
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Literal, Optional
from pydantic import BaseModel, field_validator


class CommandResultType(Enum):
    NODE_LIST = "node_list"
    TASK_LIST = "task_list"
    NODE_STATUS = "node_status"
    LOG_LIST = "log_list"
    AI_RESPONSE = "ai_response"  # data is an AiCommandResult
    SIMPLE_MESSAGE = "simple_message"
    ERROR = "error"


class AiCommandResult(BaseModel):
    """What the translator made of a free-text request"""
    answer_type: Literal["message", "instructions"]
    message: Optional[str] = None
    instructions: Optional[List[str]] = None

    @field_validator("instructions")
    @classmethod
    def drop_empty_instructions(cls, value):
        if value is None:
            return None
        return [item.strip() for item in value if item and item.strip()]


@dataclass
class CommandResult:
    """Structured outcome of one command line"""
    type: CommandResultType
    data: Any = None
    error_message: Optional[str] = None

    @classmethod
    def success(cls, result_type: CommandResultType, data: Any) -> "CommandResult":
        return cls(type=result_type, data=data)

    @classmethod
    def message(cls, message: str) -> "CommandResult":
        return cls(type=CommandResultType.SIMPLE_MESSAGE, data=message)

    @classmethod
    def ai(cls, ai_result: AiCommandResult) -> "CommandResult":
        return cls(type=CommandResultType.AI_RESPONSE, data=ai_result)

    @classmethod
    def error(cls, message: str) -> "CommandResult":
        return cls(type=CommandResultType.ERROR, error_message=message)

    @property
    def is_error(self) -> bool:
        return self.type == CommandResultType.ERROR
