"""Summary: FastAPI application for InboxSift.

Importance: Exposes HTTP endpoints for ingestion, extraction, and suggestion review.
Alternatives: Use a CLI-only workflow or a different web framework.
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Literal

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from inboxsift.ai import AiProvider
from inboxsift.app import AppServices, build_context, build_job_runner, default_workspace
from inboxsift.config import AppConfig
from inboxsift.errors import ArchivedItemError, InvalidSignatureError, NotFoundError
from inboxsift.jobs import ExtractionJob, ExtractionJobRunner
from inboxsift.models import InboxItemSource, InboxItemStatus, SuggestionStatus, SuggestionType
from inboxsift.storage.sqlite_store import StoredExtraction, StoredInboxItem, StoredSuggestion
from inboxsift.webhooks import handle_inbound_email


class InboxItemCreateRequest(BaseModel):
    """Summary: Request payload for manual or shared inbox items.

    Importance: Keeps ingestion inputs explicit for API clients.
    Alternatives: Accept multipart form uploads.
    """

    raw_content: str = Field(min_length=1, max_length=100_000)
    raw_subject: str | None = Field(default=None, max_length=255)
    source: Literal["manual", "share"] = "manual"


class InboxItemUpdateRequest(BaseModel):
    """Summary: Request payload for inbox item status changes.

    Importance: Archival is the only status change a user may request.
    Alternatives: Expose a dedicated archive endpoint.
    """

    status: Literal["archived"]


def _item_dict(item: StoredInboxItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "workspace_id": item.workspace_id,
        "source": item.source.value,
        "raw_subject": item.raw_subject,
        "raw_content": item.raw_content,
        "received_at": item.received_at,
        "status": item.status.value,
        "created_at": item.created_at,
    }


def _extraction_dict(extraction: StoredExtraction) -> dict[str, Any]:
    return {
        "id": extraction.id,
        "inbox_item_id": extraction.inbox_item_id,
        "model_version": extraction.model_version,
        "prompt_version": extraction.prompt_version,
        "raw_response": extraction.raw_response,
        "created_at": extraction.created_at,
    }


def _suggestion_dict(suggestion: StoredSuggestion) -> dict[str, Any]:
    return {
        "id": suggestion.id,
        "extraction_id": suggestion.extraction_id,
        "type": suggestion.type.value,
        "payload": suggestion.payload,
        "status": suggestion.status.value,
        "created_at": suggestion.created_at,
        "updated_at": suggestion.updated_at,
    }


def create_app(
    config: AppConfig,
    provider: AiProvider | None = None,
    job_runner: ExtractionJobRunner | None = None,
) -> FastAPI:
    """Summary: Create a FastAPI app wired to InboxSift services.

    Importance: Ensures the API layer shares the same configuration and storage.
    Alternatives: Instantiate services globally outside the factory.
    """

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    context = build_context(config, provider)
    fallback_workspace = default_workspace(context)
    runner = job_runner or build_job_runner(context)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await run_in_threadpool(runner.shutdown)

    app = FastAPI(title="InboxSift API", version="0.1.0", lifespan=lifespan)
    app.state.context = context
    app.state.job_runner = runner

    @app.exception_handler(NotFoundError)
    def not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ArchivedItemError)
    def archived(request: Request, exc: ArchivedItemError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
        """Summary: Enforce API key authentication when configured.

        Importance: Adds a minimal security layer for local and private deployments.
        Alternatives: Use OAuth or session-based authentication.
        """

        if not config.api_key:
            return
        if x_api_key != config.api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")

    def workspace_services(x_workspace_id: int | None = Header(default=None)) -> AppServices:
        """Summary: Resolve the workspace a request acts on.

        Importance: Passes workspace identity explicitly into every service.
        Alternatives: Derive the workspace from a user session.
        """

        if x_workspace_id is None:
            return context.services_for_workspace(fallback_workspace.id)
        if not context.store.get_workspace(x_workspace_id):
            raise HTTPException(status_code=404, detail="Workspace not found")
        return context.services_for_workspace(x_workspace_id)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/inbox-items", status_code=201, dependencies=[Depends(require_api_key)])
    def create_inbox_item(
        payload: InboxItemCreateRequest, services: AppServices = Depends(workspace_services)
    ) -> dict[str, Any]:
        """Summary: Create an inbox item from manual entry or a share."""

        try:
            item = services.inbox.create_item(
                raw_content=payload.raw_content,
                raw_subject=payload.raw_subject,
                source=InboxItemSource(payload.source),
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return _item_dict(item)

    @app.get("/inbox-items", dependencies=[Depends(require_api_key)])
    def list_inbox_items(
        status: InboxItemStatus | None = None,
        limit: int = 15,
        offset: int = 0,
        services: AppServices = Depends(workspace_services),
    ) -> list[dict[str, Any]]:
        """Summary: List inbox items, newest first."""

        return [
            _item_dict(item)
            for item in services.inbox.list_items(status=status, limit=limit, offset=offset)
        ]

    @app.get("/inbox-items/{item_id}", dependencies=[Depends(require_api_key)])
    def show_inbox_item(
        item_id: int, services: AppServices = Depends(workspace_services)
    ) -> dict[str, Any]:
        """Summary: Show an inbox item with its extractions and suggestions.

        Importance: Gives review screens everything derived from one item.
        Alternatives: Require separate calls per relation.
        """

        item = services.inbox.get_item(item_id)
        latest = services.inbox.latest_extraction(item_id)
        return {
            **_item_dict(item),
            "extractions": [
                _extraction_dict(extraction)
                for extraction in services.inbox.list_extractions(item_id)
            ],
            "latest_extraction_id": latest.id if latest else None,
            "suggestions": [
                _suggestion_dict(suggestion)
                for suggestion in services.inbox.list_item_suggestions(item_id)
            ],
        }

    @app.patch("/inbox-items/{item_id}", dependencies=[Depends(require_api_key)])
    def update_inbox_item(
        item_id: int,
        payload: InboxItemUpdateRequest,
        services: AppServices = Depends(workspace_services),
    ) -> dict[str, Any]:
        """Summary: Archive an inbox item."""

        return _item_dict(services.inbox.archive_item(item_id))

    @app.post(
        "/inbox-items/{item_id}/extract", status_code=202, dependencies=[Depends(require_api_key)]
    )
    def extract_inbox_item(
        item_id: int, services: AppServices = Depends(workspace_services)
    ) -> dict[str, str]:
        """Summary: Queue extraction for an inbox item.

        Importance: Returns before the model call so clients never wait on the AI provider.
        Alternatives: Run extraction synchronously and return suggestions.
        """

        item = services.inbox.ensure_extractable(item_id)
        runner.dispatch(ExtractionJob(inbox_item_id=item.id, workspace_id=services.workspace_id))
        return {"message": "Extraction job has been queued."}

    @app.get("/suggestions", dependencies=[Depends(require_api_key)])
    def list_suggestions(
        status: SuggestionStatus | None = None,
        type: SuggestionType | None = None,
        limit: int = 20,
        offset: int = 0,
        services: AppServices = Depends(workspace_services),
    ) -> list[dict[str, Any]]:
        """Summary: List suggestions, optionally filtered by status and type."""

        return [
            _suggestion_dict(suggestion)
            for suggestion in services.suggestions.list_suggestions(
                status=status, suggestion_type=type, limit=limit, offset=offset
            )
        ]

    @app.get("/suggestions/{suggestion_id}", dependencies=[Depends(require_api_key)])
    def show_suggestion(
        suggestion_id: int, services: AppServices = Depends(workspace_services)
    ) -> dict[str, Any]:
        return _suggestion_dict(services.suggestions.get_suggestion(suggestion_id))

    @app.post("/suggestions/{suggestion_id}/accept", dependencies=[Depends(require_api_key)])
    def accept_suggestion(
        suggestion_id: int, services: AppServices = Depends(workspace_services)
    ) -> dict[str, Any]:
        return _suggestion_dict(services.suggestions.accept(suggestion_id))

    @app.post("/suggestions/{suggestion_id}/reject", dependencies=[Depends(require_api_key)])
    def reject_suggestion(
        suggestion_id: int, services: AppServices = Depends(workspace_services)
    ) -> dict[str, Any]:
        return _suggestion_dict(services.suggestions.reject(suggestion_id))

    @app.post("/webhooks/inbound-email")
    async def inbound_email(request: Request) -> dict[str, str]:
        """Summary: Receive an inbound email callback.

        Importance: Authenticated by signature rather than API key so the email provider can call it.
        Alternatives: Share the API key with the email provider.
        """

        body = await request.body()
        try:
            payload = json.loads(body or b"{}")
        except json.JSONDecodeError as exc:
            raise HTTPException(status_code=400, detail="Invalid JSON body") from exc
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Invalid JSON body")
        try:
            await run_in_threadpool(
                handle_inbound_email,
                context.store,
                payload,
                request.headers,
                body,
                config.resend_webhook_secret,
            )
        except InvalidSignatureError as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc
        return {"status": "ok"}

    return app
