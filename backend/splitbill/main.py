import logging
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send

from splitbill.api.auth import router as auth_router
from splitbill.api.bills import router as bills_router
from splitbill.api.shared import router as shared_router
from splitbill.api.terminal import router as terminal_router
from splitbill.core.config import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("splitbill")


class TimingMiddleware:
    """Plain ASGI middleware logging method, path, status and duration per request."""
    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        t0 = time.perf_counter()
        status_code = 0

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        await self.app(scope, receive, send_wrapper)
        ms = int((time.perf_counter() - t0) * 1000)
        logger.info(f"{scope.get('method', '?')} {scope.get('path', '?')} -> {status_code} in {ms}ms")


app = FastAPI(title="Splitbill API", version="0.1.0")

app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(bills_router)
app.include_router(shared_router)
app.include_router(terminal_router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
