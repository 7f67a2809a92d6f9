from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field
from starlette.requests import ClientDisconnect

from ..dispatch import JobDispatcher
from ..errors import ConfigError, ParseError
from ..settings import Settings
from ..ui.console import get_console
from .payload import parse_push
from .signature import SIGNATURE_HEADER, verify

# -------------------- Schemas --------------------

class AcceptedResponse(BaseModel):
    status: str = "accepted"
    job_id: str

class JobResponse(BaseModel):
    id: str
    clone_url: str
    commit_ref: str
    status: str
    error: str | None = None
    images: dict[str, str] = Field(default_factory=dict)
    published: dict[str, str] = Field(default_factory=dict)
    created_at: datetime
    finished_at: datetime | None = None

# -------------------- App --------------------

def create_app(settings: Settings, dispatcher: Optional[JobDispatcher] = None) -> FastAPI:
    """
    Build the webhook gateway around explicit settings.

    Refuses to start without a webhook secret unless unsigned deliveries
    were allowed on purpose (settings.allow_unsigned).
    """
    console = get_console()
    if not settings.webhook_secret:
        if not settings.allow_unsigned:
            raise ConfigError(
                "WEBHOOK_SECRET is empty; set ALLOW_UNSIGNED_WEBHOOKS=true to accept unsigned deliveries"
            )
        console.print_warning("signature verification disabled: accepting unsigned webhooks")

    dispatcher = dispatcher or JobDispatcher(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        dispatcher.shutdown(wait=False)

    app = FastAPI(title="gitrunner webhook gateway", lifespan=lifespan)
    app.state.settings = settings
    app.state.dispatcher = dispatcher

    # -------------------- Endpoints --------------------

    @app.post("/webhook")
    async def webhook(
        request: Request,
        x_github_event: str | None = Header(None),
        signature: str | None = Header(None, alias=SIGNATURE_HEADER),
    ):
        event = x_github_event or ""
        console.print_webhook(event)

        if event == "ping":
            return PlainTextResponse("Pong!", status_code=200)
        if event in settings.ack_events:
            return PlainTextResponse("Ignored", status_code=200)
        if event != settings.trigger_event:
            raise HTTPException(status_code=400, detail="unsupported event type")

        try:
            body = await request.body()
        except ClientDisconnect:
            raise HTTPException(status_code=500, detail="failed to read request body")

        if settings.webhook_secret and not verify(body, signature, settings.webhook_secret):
            raise HTTPException(status_code=401, detail="invalid signature")

        try:
            push = parse_push(body)
        except ParseError:
            raise HTTPException(status_code=400, detail="invalid payload")

        job_id = dispatcher.submit(push)
        return JSONResponse(
            status_code=202,
            content=AcceptedResponse(job_id=job_id).model_dump(),
        )

    @app.get("/jobs/{job_id}", response_model=JobResponse)
    async def get_job(job_id: str):
        """Get job status, built images and error if any."""
        record = dispatcher.get(job_id)
        if not record:
            raise HTTPException(status_code=404, detail="Job not found")

        return JobResponse(
            id=record.id,
            clone_url=record.clone_url,
            commit_ref=record.commit_ref,
            status=record.status,
            error=record.error,
            images=record.images,
            published=record.published,
            created_at=record.created_at,
            finished_at=record.finished_at,
        )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
