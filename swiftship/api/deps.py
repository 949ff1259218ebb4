"""FastAPI dependencies resolving the running application context."""
from __future__ import annotations

from typing import Optional

from fastapi import Header, Request

from swiftship.runtime import AppContext


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_tenant_id(
    request: Request,
    x_tenant_id: Optional[str] = Header(default=None),
) -> str:
    """Tenant from the trusted gateway header, else the configured default."""
    if x_tenant_id:
        return x_tenant_id
    return get_context(request).config.default_tenant
