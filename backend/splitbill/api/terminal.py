from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from splitbill.core.auth import get_current_user
from splitbill.core.database import get_db
from splitbill.models.user import User
from splitbill.schemas.terminal import TerminalCommand, TerminalResponse
from splitbill.terminal.interpreter import BillTerminal
from splitbill.terminal.service_backend import ServiceBillApi

router = APIRouter(prefix="/api/terminal", tags=["terminal"])


@router.post("", response_model=TerminalResponse)
async def run_terminal_command(
    body: TerminalCommand,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Run one submitted terminal line for the current user.
    The widget keeps its own log; this returns only the messages produced by this line
    (cleared=True tells it to drop what it has first).
    """
    terminal = BillTerminal(ServiceBillApi(db, user))
    messages = await terminal.execute(body.command)
    return TerminalResponse(messages=messages, cleared=terminal.cleared)
