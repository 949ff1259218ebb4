"""HTTP entry point for delivery exceptions."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header

from swiftship.api.deps import get_context, get_tenant_id
from swiftship.core.schemas import ExceptionEvent, ResolutionSummary
from swiftship.orchestration.supervisor import SessionContext
from swiftship.runtime import AppContext

router = APIRouter(prefix="/exceptions", tags=["exceptions"])


@router.post("", response_model=ResolutionSummary, response_model_by_alias=True)
async def resolve_exception(
    event: ExceptionEvent,
    tenant_id: str = Depends(get_tenant_id),
    x_session_id: Optional[str] = Header(default=None),
    context: AppContext = Depends(get_context),
) -> ResolutionSummary:
    """Classify the exception, run the specialists and return the summary."""
    session = SessionContext(tenant_id=tenant_id, session_id=x_session_id)
    return await context.supervisor.resolve(event, context.endpoints(), session)
