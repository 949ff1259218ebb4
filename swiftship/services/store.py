"""Tenant-scoped key-value store for domain records.

Records are plain dicts carrying a ``version`` counter. Writers that depend on
what they read pass ``expected_version`` so that a concurrent update makes the
write fail instead of silently overwriting it.
"""
from __future__ import annotations

import asyncio
import copy
from typing import Any, Dict, Optional, Protocol, Tuple

from swiftship.core.errors import ConditionalCheckFailed

Record = Dict[str, Any]


class KeyValueStore(Protocol):
    async def get(self, tenant_id: str, key: str) -> Optional[Record]:
        ...

    async def put(self, tenant_id: str, key: str, value: Record, *, if_absent: bool = False) -> Record:
        ...

    async def update(
        self,
        tenant_id: str,
        key: str,
        changes: Record,
        *,
        expected_version: Optional[int] = None,
    ) -> Record:
        ...

    async def delete(self, tenant_id: str, key: str) -> None:
        ...


class InMemoryStore:
    """Process-local store; keys never cross tenant boundaries."""

    def __init__(self) -> None:
        self._records: Dict[Tuple[str, str], Record] = {}
        self._lock = asyncio.Lock()

    async def get(self, tenant_id: str, key: str) -> Optional[Record]:
        record = self._records.get((tenant_id, key))
        return copy.deepcopy(record) if record is not None else None

    async def put(self, tenant_id: str, key: str, value: Record, *, if_absent: bool = False) -> Record:
        async with self._lock:
            if if_absent and (tenant_id, key) in self._records:
                raise ConditionalCheckFailed(f"Record '{key}' already exists")
            record = {**copy.deepcopy(value), "version": 1}
            self._records[(tenant_id, key)] = record
            return copy.deepcopy(record)

    async def update(
        self,
        tenant_id: str,
        key: str,
        changes: Record,
        *,
        expected_version: Optional[int] = None,
    ) -> Record:
        async with self._lock:
            current = self._records.get((tenant_id, key))
            if current is None:
                raise ConditionalCheckFailed(f"Record '{key}' does not exist")
            if expected_version is not None and current["version"] != expected_version:
                raise ConditionalCheckFailed(f"Record '{key}' has been modified")
            record = {**current, **copy.deepcopy(changes), "version": current["version"] + 1}
            self._records[(tenant_id, key)] = record
            return copy.deepcopy(record)

    async def delete(self, tenant_id: str, key: str) -> None:
        async with self._lock:
            self._records.pop((tenant_id, key), None)
