from datetime import datetime
from typing import Literal
from pydantic import BaseModel


class TerminalCommand(BaseModel):
    command: str


class TerminalMessage(BaseModel):
    type: Literal["system", "user", "success", "error"]
    content: str
    timestamp: datetime


class TerminalResponse(BaseModel):
    messages: list[TerminalMessage]
    cleared: bool = False
