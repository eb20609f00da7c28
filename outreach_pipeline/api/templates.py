"""
Template API routes - CRUD, versioning and stats.
"""
import uuid
from typing import Optional, List
from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from outreach_pipeline.config import settings
from outreach_pipeline.database import get_session
from outreach_pipeline.models.template import TemplateKind
from outreach_pipeline.services.template_service import TemplateService
from outreach_pipeline.schemas.template import (
    TemplateCreate, TemplateUpdate, TemplateResponse,
    TemplateIterateResponse, TemplateStatsResponse
)
from outreach_pipeline.api.deps import require_api_key

router = APIRouter(
    prefix=f"{settings.API_PREFIX}/templates",
    tags=["templates"],
    dependencies=[Depends(require_api_key)]
)


@router.post("/", response_model=TemplateResponse, status_code=201)
async def create_template(
    template_data: TemplateCreate,
    session: AsyncSession = Depends(get_session)
):
    """Create a message template."""
    template_service = TemplateService(session)
    return await template_service.create(template_data)


@router.get("/")
async def list_templates(
    profile_id: Optional[uuid.UUID] = None,
    kind: Optional[TemplateKind] = None,
    current: bool = False,
    session: AsyncSession = Depends(get_session)
):
    """List templates, newest first."""
    template_service = TemplateService(session)
    templates = await template_service.list(profile_id, kind, current)
    return {"items": templates, "total": len(templates)}


@router.get("/stats", response_model=List[TemplateStatsResponse])
async def template_stats(session: AsyncSession = Depends(get_session)):
    """Outcome counts and acceptance/reply rates per template."""
    template_service = TemplateService(session)
    stats = await template_service.stats()
    return [TemplateStatsResponse.model_validate(s) for s in stats]


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template(
    template_id: uuid.UUID,
    session: AsyncSession = Depends(get_session)
):
    """Get a template by ID."""
    template_service = TemplateService(session)
    return await template_service.get(template_id)


@router.patch("/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: uuid.UUID,
    template_data: TemplateUpdate,
    session: AsyncSession = Depends(get_session)
):
    """Edit a template in place."""
    template_service = TemplateService(session)
    return await template_service.update(template_id, template_data)


@router.post("/{template_id}/iterate", response_model=TemplateIterateResponse, status_code=201)
async def iterate_template(
    template_id: uuid.UUID,
    session: AsyncSession = Depends(get_session)
):
    """Retire a template and create its next version."""
    template_service = TemplateService(session)
    original, created = await template_service.iterate(template_id)
    return TemplateIterateResponse(
        original=TemplateResponse.model_validate(original),
        new=TemplateResponse.model_validate(created)
    )


@router.post("/{template_id}/toggle", response_model=TemplateResponse)
async def toggle_template(
    template_id: uuid.UUID,
    session: AsyncSession = Depends(get_session)
):
    """Flip a template's current flag."""
    template_service = TemplateService(session)
    return await template_service.toggle_current(template_id)
