"""Chat widget endpoint: OPTIONS preflight, GET widget page, POST chat turn."""

from __future__ import annotations

import json
import logging
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response
from pydantic import ValidationError

from ..core.config import settings
from ..core.dependencies import get_chat_service, get_flow_repository, get_log_repository
from ..core.exceptions import FlowChatError
from ..repositories import FlowRepository, LogRepository
from ..schemas.chat import ChatRequest
from ..services.chat_service import ChatService
from ..services.widget import build_widget_page

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat-widget")

ROUTE_SEGMENT = "chat-widget"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type, x-api-key",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}


def _path_identifier(identifier: Optional[str]) -> Optional[str]:
    if not identifier or identifier == ROUTE_SEGMENT:
        return None
    return identifier


def _chat_api_url(request: Request) -> str:
    base = settings.public_base_url or str(request.base_url)
    return f"{base.rstrip('/')}/{ROUTE_SEGMENT}"


def _error_response(status_code: int, body: dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body, headers=CORS_HEADERS)


async def _read_body(request: Request) -> dict[str, Any]:
    """Request JSON as a dict; anything unparseable counts as empty."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return body if isinstance(body, dict) else {}


# --- OPTIONS ---


@router.options("")
@router.options("/{identifier}")
async def preflight(identifier: Optional[str] = None) -> Response:
    """CORS preflight."""
    return Response(status_code=204, headers=CORS_HEADERS)


# --- GET ---


@router.get("", response_class=HTMLResponse)
@router.get("/{identifier}", response_class=HTMLResponse)
async def widget_page(
    request: Request,
    flows: Annotated[FlowRepository, Depends(get_flow_repository)],
    identifier: Optional[str] = None,
    flow: Optional[str] = None,
    mode: Optional[str] = None,
    theme: Optional[str] = None,
) -> HTMLResponse:
    """Serve the embeddable chat widget."""
    flow_identifier = flow or _path_identifier(identifier)
    page = await build_widget_page(flows, flow_identifier, _chat_api_url(request), mode, theme)
    return HTMLResponse(content=page, headers=CORS_HEADERS)


# --- POST ---


@router.post("")
@router.post("/{identifier}")
async def chat(
    request: Request,
    service: Annotated[ChatService, Depends(get_chat_service)],
    error_log: Annotated[LogRepository, Depends(get_log_repository)],
    identifier: Optional[str] = None,
) -> JSONResponse:
    """Run one chat turn against the flow's AI agent."""
    raw = await _read_body(request)
    flow_identifier = (
        raw.get("flow")
        or raw.get("flowProjectId")
        or request.query_params.get("flow")
        or _path_identifier(identifier)
    )

    try:
        body = ChatRequest.model_validate(raw)
    except ValidationError as e:
        logger.info("Rejected chat request body: %s", e.error_count())
        return _error_response(400, {"error": "Invalid request body"})

    try:
        reply = await service.chat(
            flow_identifier=body.flow_identifier or flow_identifier,
            message=body.message,
            history=body.history_messages(),
            session_id=body.sessionId,
            origin=request.headers.get("origin") or request.headers.get("referer"),
            api_key=request.headers.get("x-api-key"),
        )
    except FlowChatError as e:
        if e.status_code >= 500:
            logger.error("Chat request failed: %s", e.message)
        return _error_response(e.status_code, e.to_body())
    except Exception as e:
        logger.exception("Unhandled chat-widget error")
        if flow_identifier:
            await error_log.log_chat_error(
                str(flow_identifier),
                None,
                f"Unhandled error: {e}",
                {"error": str(e)},
            )
        return _error_response(500, {"error": str(e) or "Internal error"})

    return JSONResponse(content=reply.model_dump(), headers=CORS_HEADERS)
