"""REST transport speaking the PostgREST query dialect."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from enum import Enum
from typing import Any

import aiohttp

from bookingsync._constants import (
    IDENTITY_ADMIN_PATH,
    PG_NOT_FOUND_CODES,
    PG_PERMISSION_CODES,
    REST_PATH,
    USER_AGENT,
)
from bookingsync.config import SyncConfig
from bookingsync.exceptions import (
    GatewayError,
    IdentityLookupError,
    RejectionReason,
    TransientGatewayError,
    WriteRejectedError,
)
from bookingsync.gateway import Condition, Join, Order

_logger = logging.getLogger(__name__)


def build_select(columns: Sequence[str], joins: Sequence[Join]) -> str:
    """Render the ``select`` parameter, embedding joined relations.

    >>> build_select(["*"], [Join("services", ("id", "name"))])
    '*,services(id,name)'
    """
    parts = [",".join(columns) or "*"]
    for join in joins:
        target = join.relation if join.hint is None else f"{join.relation}!{join.hint}"
        if join.alias:
            target = f"{join.alias}:{target}"
        parts.append(f"{target}({','.join(join.columns)})")
    return ",".join(parts)


def _format_value(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def encode_filters(filters: Sequence[Condition]) -> list[tuple[str, str]]:
    """Render filters as ``column=op.value`` query pairs."""
    pairs: list[tuple[str, str]] = []
    for condition in filters:
        op = "is" if condition.value is None and condition.op == "eq" else condition.op
        pairs.append((condition.column, f"{op}.{_format_value(condition.value)}"))
    return pairs


def encode_order(order: Order | None) -> list[tuple[str, str]]:
    if order is None:
        return []
    direction = "asc" if order.ascending else "desc"
    return [("order", f"{order.column}.{direction}")]


def _error_fields(body: Any) -> tuple[str, str]:
    if isinstance(body, dict):
        code = str(body.get("code") or "")
        message = str(body.get("message") or body.get("msg") or body.get("error_description") or "")
        return code, message
    return "", ""


def rejection_reason(status: int, code: str) -> RejectionReason:
    """Classify a refused write by HTTP status and database error code."""
    if status in (401, 403) or code in PG_PERMISSION_CODES:
        return RejectionReason.PERMISSION
    if status == 404 or code in PG_NOT_FOUND_CODES:
        return RejectionReason.NOT_FOUND
    if status == 409 or code.startswith("23"):
        return RejectionReason.CONSTRAINT
    return RejectionReason.INVALID


class RestTransport:
    """HTTP transport for relation queries, writes and identity lookups."""

    def __init__(self, config: SyncConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    def _headers(self, *, write: bool = False) -> dict[str, str]:
        headers: dict[str, str] = {
            "apikey": self._config.api_key,
            "authorization": f"Bearer {self._config.bearer_token}",
            "accept": "application/json",
            "accept-profile": self._config.schema,
            "user-agent": USER_AGENT,
        }
        if write:
            headers["content-type"] = "application/json"
            headers["content-profile"] = self._config.schema
            headers["prefer"] = "return=representation"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        relation: str,
        params: Sequence[tuple[str, str]] = (),
        body: Any = None,
        write: bool = False,
    ) -> Any:
        url = f"{self._config.base_url}{path}"
        data = None if body is None else json.dumps(body, separators=(",", ":"))
        timeout = aiohttp.ClientTimeout(total=self._config.request_timeout)

        _logger.debug("%s %s", method, url)

        try:
            async with self._http.request(
                method,
                url,
                params=list(params),
                data=data,
                headers=self._headers(write=write),
                timeout=timeout,
            ) as resp:
                status = resp.status
                text = await resp.text()
        except aiohttp.ClientError as exc:
            raise TransientGatewayError(f"Request to {relation} failed: {exc}", relation=relation) from exc
        except asyncio.TimeoutError as exc:
            raise TransientGatewayError(f"Request to {relation} timed out", relation=relation) from exc

        try:
            payload = json.loads(text) if text.strip() else None
        except json.JSONDecodeError as exc:
            if status >= 400:
                payload = None
            else:
                raise TransientGatewayError(
                    f"Invalid JSON from {relation}: {text[:200]}",
                    relation=relation,
                    status_code=status,
                ) from exc

        if status < 400:
            return payload

        code, message = _error_fields(payload)
        detail = message or text[:200] or f"HTTP {status}"
        if status >= 500:
            raise TransientGatewayError(
                f"HTTP {status} from {relation}: {detail}",
                relation=relation,
                code=code,
                status_code=status,
            )
        if write:
            raise WriteRejectedError(
                detail,
                reason=rejection_reason(status, code),
                relation=relation,
                code=code,
                status_code=status,
            )
        raise GatewayError(detail, relation=relation, code=code, status_code=status)

    async def select(
        self,
        relation: str,
        filters: Sequence[Condition],
        *,
        columns: Sequence[str] = ("*",),
        joins: Sequence[Join] = (),
        order: Order | None = None,
    ) -> list[dict[str, Any]]:
        params = [("select", build_select(columns, joins)), *encode_filters(filters), *encode_order(order)]
        payload = await self._request("GET", f"{REST_PATH}/{relation}", relation=relation, params=params)
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise TransientGatewayError(f"Expected a row list from {relation}", relation=relation)
        return [row for row in payload if isinstance(row, dict)]

    async def insert(self, relation: str, row: Mapping[str, Any]) -> dict[str, Any]:
        payload = await self._request(
            "POST",
            f"{REST_PATH}/{relation}",
            relation=relation,
            body=dict(row),
            write=True,
        )
        if isinstance(payload, list) and payload and isinstance(payload[0], dict):
            return payload[0]
        if isinstance(payload, dict):
            return payload
        return {}

    async def update(self, relation: str, patch: Mapping[str, Any], filters: Sequence[Condition]) -> None:
        payload = await self._request(
            "PATCH",
            f"{REST_PATH}/{relation}",
            relation=relation,
            params=encode_filters(filters),
            body=dict(patch),
            write=True,
        )
        # An ownership filter that matches nothing comes back as an empty list.
        if isinstance(payload, list) and not payload:
            raise WriteRejectedError(
                f"No {relation} row matched the update filter",
                reason=RejectionReason.NOT_FOUND,
                relation=relation,
            )

    async def get_identity_record(self, user_ref: str) -> dict[str, Any]:
        try:
            payload = await self._request("GET", f"{IDENTITY_ADMIN_PATH}/{user_ref}", relation="users")
        except GatewayError as exc:
            raise IdentityLookupError(
                str(exc),
                relation="users",
                code=exc.code,
                status_code=exc.status_code,
            ) from exc
        if not isinstance(payload, dict):
            raise IdentityLookupError(f"Identity record {user_ref} is not an object", relation="users")
        # Admin endpoints wrap the record as {"user": {...}} in some versions.
        user = payload.get("user")
        return user if isinstance(user, dict) else payload
