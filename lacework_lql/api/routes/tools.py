"""API routes for tool listing, invocation and registry maintenance."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from lacework_lql.tools.registry import DynamicCapabilityRegistry
from lacework_lql.tools.schemas import (
    CapabilitySummary,
    DynamicCapability,
    ToolResult,
    UsageRecord,
)
from lacework_lql.tools.service import ToolService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tools", tags=["tools"])


# ── Request/Response schemas ─────────────────────────────


class ToolCallRequest(BaseModel):
    name: str = Field(..., description="Tool name, static or dynamic")
    arguments: dict[str, Any] = Field(default_factory=dict)


class PruneRequest(BaseModel):
    max_age_seconds: Optional[float] = Field(
        default=None,
        ge=0,
        description="Idle age threshold; defaults to the configured prune age",
    )


class PruneResponse(BaseModel):
    pruned: int


class ImportResponse(BaseModel):
    imported: int


def _get_service(request: Request) -> ToolService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Tool service not initialized")
    return service


def _get_registry(request: Request) -> DynamicCapabilityRegistry:
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(status_code=503, detail="Tool registry not initialized")
    return registry


# ── Endpoints ────────────────────────────────────────────


@router.get("", response_model=list[CapabilitySummary])
async def list_tools(request: Request):
    """List static tools followed by every dynamic tool."""
    return _get_service(request).list_tools()


@router.post("/call", response_model=ToolResult)
async def call_tool(body: ToolCallRequest, request: Request):
    """Invoke a tool. Failures come back as is_error results, not HTTP errors."""
    return await _get_service(request).call_tool(body.name, body.arguments)


@router.get("/usage", response_model=list[UsageRecord])
async def usage_report(request: Request):
    return _get_registry(request).usage_report()


@router.post("/prune", response_model=PruneResponse)
async def prune_tools(request: Request, body: Optional[PruneRequest] = None):
    """Remove dynamic tools that were never used and have been idle too long."""
    max_age = body.max_age_seconds if body else None
    if max_age is None:
        max_age = request.app.state.settings.prune_max_age_seconds
    pruned = await _get_registry(request).prune(max_age)
    return PruneResponse(pruned=pruned)


@router.get("/export", response_model=list[DynamicCapability])
async def export_tools(request: Request):
    return _get_registry(request).export_all()


@router.post("/import", response_model=ImportResponse)
async def import_tools(capabilities: list[DynamicCapability], request: Request):
    """Restore exported tools, overwriting any with the same name."""
    imported = await _get_registry(request).import_all(capabilities)
    return ImportResponse(imported=imported)
