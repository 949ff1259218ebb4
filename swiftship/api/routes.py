"""HTTP API exposing agent cards and the task channel."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, status

from swiftship.api.deps import get_context, get_tenant_id
from swiftship.core.errors import MalformedRequest, TransportError
from swiftship.orchestration.directory import validate_request
from swiftship.runtime import AppContext

router = APIRouter(prefix="/agents", tags=["agents"])

CLIENT_ID = "http-client"

_ERROR_STATUS = {
    "malformed_request": status.HTTP_400_BAD_REQUEST,
    "duplicate_task": status.HTTP_409_CONFLICT,
    "task_not_found": status.HTTP_404_NOT_FOUND,
    "invalid_transition": status.HTTP_409_CONFLICT,
    "unauthorized": status.HTTP_401_UNAUTHORIZED,
}


def _require_agent(context: AppContext, endpoint: str) -> None:
    if endpoint not in context.directory:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown agent '{endpoint}'")


async def _call(context: AppContext, endpoint: str, payload: Dict[str, Any], timeout: float) -> Dict[str, Any]:
    try:
        reply = await context.bus.request(CLIENT_ID, endpoint, payload, timeout=timeout)
    except TransportError as exc:
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(exc)) from exc
    error = reply.payload.get("error")
    if error:
        code = _ERROR_STATUS.get(error.get("code"), status.HTTP_500_INTERNAL_SERVER_ERROR)
        raise HTTPException(status_code=code, detail=error.get("message"))
    return reply.payload["result"]


@router.get("", response_model=List[Dict[str, Any]])
async def list_agents(context: AppContext = Depends(get_context)) -> List[Dict[str, Any]]:
    return [card.to_dict() for card in context.directory.cards()]


@router.get("/{endpoint}/card")
async def get_card(endpoint: str, context: AppContext = Depends(get_context)) -> Dict[str, Any]:
    try:
        return context.directory.describe(endpoint).to_dict()
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown agent '{endpoint}'") from exc


@router.post("/{endpoint}/tasks")
async def send_task(
    endpoint: str,
    body: Any = Body(...),
    tenant_id: str = Depends(get_tenant_id),
    x_session_id: Optional[str] = Header(default=None),
    context: AppContext = Depends(get_context),
) -> Dict[str, Any]:
    """Send a task envelope to an agent and wait for the terminal task."""
    _require_agent(context, endpoint)
    try:
        request = validate_request(body)
    except MalformedRequest as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    payload: Dict[str, Any] = {
        "method": "message/send",
        "params": request.model_dump(by_alias=True, mode="json"),
        "tenant_id": tenant_id,
    }
    if x_session_id:
        payload["session_id"] = x_session_id
    return await _call(context, endpoint, payload, context.config.orchestration.task_timeout)


@router.post("/{endpoint}/tasks/{task_id}/cancel")
async def cancel_task(endpoint: str, task_id: str, context: AppContext = Depends(get_context)) -> Dict[str, Any]:
    _require_agent(context, endpoint)
    payload = {"method": "tasks/cancel", "params": {"taskId": task_id}}
    return await _call(context, endpoint, payload, context.config.orchestration.model_timeout)
