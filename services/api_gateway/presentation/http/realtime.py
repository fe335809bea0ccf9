"""Websocket bridge from the in-process change feed to browsers.

Each connection subscribes to one table, optionally filtered by a
column value, and receives every matching change event as JSON. The
caller is identified by the ``X-User-Id`` header or, for browsers that
cannot set headers, the ``user_id`` query parameter, and only sees rows
it could also read over HTTP.
"""

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, WebSocket
from starlette.concurrency import run_in_threadpool

from libs.core.application.events import TABLES, ChangeEvent
from libs.core.domain.entities import Role
from services.api_gateway.dependencies import (
    get_access_service,
    get_dispatch_service,
    get_event_bus,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])

POLICY_VIOLATION = 1008


@router.websocket("/v1/realtime/{table}")
async def realtime_feed(
    websocket: WebSocket,
    table: str,
    column: str | None = None,
    value: str | None = None,
    user_id: str | None = None,
) -> None:
    if table not in TABLES:
        await websocket.close(code=POLICY_VIOLATION)
        return

    caller_id = (websocket.headers.get("x-user-id") or user_id or "").strip()
    if not caller_id:
        await websocket.close(code=POLICY_VIOLATION)
        return

    scope = await run_in_threadpool(_feed_scope, table, caller_id)
    if scope is None:
        logger.info("Realtime client %s refused for %s", caller_id, table)
        await websocket.close(code=POLICY_VIOLATION)
        return

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    def _forward(event: ChangeEvent) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, event.to_dict())

    # Subscribe before accepting so no event is lost after the handshake.
    subscription = get_event_bus().subscribe(
        table,
        _forward,
        column=column,
        value=value,
        scope=scope,
    )
    await websocket.accept()
    logger.info(
        "Realtime client %s subscribed to %s (%s=%s)", caller_id, table, column, value
    )
    try:
        await _pump(websocket, queue)
    finally:
        subscription.unsubscribe()
        logger.info("Realtime client %s left %s", caller_id, table)


def _feed_scope(table: str, caller_id: str) -> dict[str, str] | None:
    """Row filter the caller is held to on ``table``; None refuses the feed."""
    if table == "emergency_contacts":
        return {"user_id": caller_id}

    access = get_access_service()
    if access.has_role(caller_id, Role.ADMIN):
        return {}
    if table == "users":
        return {"user_id": caller_id}
    if table == "emergency_requests":
        if access.has_role(caller_id, Role.RESCUE_TEAM):
            return {}
        return {"reporter_id": caller_id}
    if table == "rescue_missions":
        team = get_dispatch_service().get_team_by_user(caller_id)
        if team is None:
            return None
        return {"rescue_team_id": team.team_id}
    return {}


async def _pump(websocket: WebSocket, queue: "asyncio.Queue[dict[str, Any]]") -> None:
    disconnected = asyncio.create_task(_wait_for_disconnect(websocket))
    try:
        while True:
            next_event = asyncio.create_task(queue.get())
            done, _ = await asyncio.wait(
                {next_event, disconnected},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if disconnected in done:
                next_event.cancel()
                return
            await websocket.send_json(next_event.result())
    finally:
        disconnected.cancel()


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return
