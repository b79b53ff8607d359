"""Interactive bill terminal against a running API server.

Usage: python -m scripts.terminal --email dan@test.com
Run from the backend/ directory. Type 'exit' or press Ctrl-D to quit.
"""

import argparse
import asyncio
import getpass

from splitbill.core.config import settings
from splitbill.terminal.errors import BillApiError
from splitbill.terminal.http_backend import HttpBillApi
from splitbill.terminal.interpreter import BillTerminal


def _print(messages) -> None:
    for message in messages:
        if message.type == "user":
            continue
        prefix = "! " if message.type == "error" else ""
        print(prefix + message.content)


async def main(base_url: str, email: str | None) -> None:
    async with HttpBillApi(base_url=base_url) as api:
        if email:
            password = await asyncio.to_thread(getpass.getpass, "Password: ")
            try:
                await api.sign_in(email, password)
            except BillApiError as e:
                print(f"Sign in failed: {e}")
                return

        terminal = BillTerminal(api)
        _print(terminal.open())
        while True:
            try:
                line = await asyncio.to_thread(input, "$ ")
            except EOFError:
                break
            if line.strip() in ("exit", "quit"):
                break
            _print(await terminal.execute(line))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Bill Manager Terminal")
    parser.add_argument("--url", default=settings.api_base_url, help="API base URL")
    parser.add_argument("--email", help="sign in with this account before starting")
    args = parser.parse_args()
    asyncio.run(main(args.url, args.email))
