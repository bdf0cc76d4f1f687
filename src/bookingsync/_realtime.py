"""Internal realtime runtime: websocket channels delivering row-change notifications.

Speaks the Phoenix channel protocol (``phx_join`` / ``phx_reply`` /
``postgres_changes`` / ``heartbeat``) over a single shared websocket.
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import json
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

from bookingsync._transport import encode_filters
from bookingsync.config import SyncConfig
from bookingsync.exceptions import GatewayError, TransientGatewayError
from bookingsync.gateway import ChangeCallback, ChannelHandle, Condition
from bookingsync.state.events import ChangeEvent

_PHOENIX_TOPIC = "phoenix"


@dataclass(frozen=True)
class RealtimeMessage:
    """Decoded Phoenix envelope."""

    topic: str
    event: str
    payload: dict[str, Any]
    ref: str | None = None


@dataclass
class _Channel:
    handle: ChannelHandle
    event_filter: Condition
    on_event: ChangeCallback


def channel_topic(channel_key: str) -> str:
    return f"realtime:{channel_key}"


def build_join_message(
    *,
    channel_key: str,
    relation: str,
    schema: str,
    event_filter: Condition,
    ref: str,
    access_token: str,
) -> dict[str, Any]:
    """Build a ``phx_join`` for all change types on *relation* matching *event_filter*."""
    column, expression = encode_filters([event_filter])[0]
    return {
        "topic": channel_topic(channel_key),
        "event": "phx_join",
        "payload": {
            "config": {
                "postgres_changes": [
                    {
                        "event": "*",
                        "schema": schema,
                        "table": relation,
                        "filter": f"{column}={expression}",
                    }
                ]
            },
            "access_token": access_token,
        },
        "ref": ref,
    }


def parse_message(text: str) -> RealtimeMessage | None:
    try:
        decoded = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(decoded, dict):
        return None
    payload = decoded.get("payload")
    ref = decoded.get("ref")
    return RealtimeMessage(
        topic=str(decoded.get("topic") or ""),
        event=str(decoded.get("event") or ""),
        payload=payload if isinstance(payload, dict) else {},
        ref=str(ref) if ref is not None else None,
    )


def change_event_from_message(message: RealtimeMessage, handle: ChannelHandle) -> ChangeEvent | None:
    """Convert a ``postgres_changes`` message into a :class:`ChangeEvent`."""
    if message.event != "postgres_changes":
        return None
    data = message.payload.get("data")
    data = data if isinstance(data, dict) else message.payload
    return ChangeEvent(
        channel_key=handle.channel_key,
        relation=str(data.get("table") or handle.relation),
        change_type=data.get("type") or data.get("eventType") or "UNKNOWN",
        raw=message.payload,
    )


class RealtimeRuntime:
    """Single websocket shared by every subscribed channel.

    If the socket drops while the runtime is running, it reconnects with
    exponential backoff and re-sends ``phx_join`` for every tracked channel.
    """

    def __init__(
        self,
        config: SyncConfig,
        http_session: aiohttp.ClientSession,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._http = http_session
        self._logger = logger or logging.getLogger(__name__)
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader: asyncio.Task[None] | None = None
        self._heartbeat: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._stopping = False
        self._refs = itertools.count(1)
        self._channels: dict[str, _Channel] = {}
        self._pending: dict[str, asyncio.Future[dict[str, Any]]] = {}
        self._start_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._ws is not None and not self._ws.closed

    def _next_ref(self) -> str:
        return str(next(self._refs))

    async def start(self) -> None:
        async with self._start_lock:
            self._stopping = False
            await self._ensure_connected()

    async def _ensure_connected(self) -> None:
        if self.is_running:
            return
        await self._connect()
        await self._rejoin()
        if self._heartbeat is None or self._heartbeat.done():
            self._heartbeat = asyncio.create_task(self._heartbeat_loop())

    async def _connect(self) -> None:
        url = self._config.websocket_url
        self._logger.debug("Realtime connect url=%s", url)
        try:
            ws = await self._http.ws_connect(
                url,
                params={"apikey": self._config.api_key, "vsn": "1.0.0"},
            )
        except aiohttp.ClientError as exc:
            raise TransientGatewayError(f"Realtime connect failed: {exc}") from exc
        self._ws = ws
        self._reader = asyncio.create_task(self._read_loop(ws))

    async def stop(self) -> None:
        self._stopping = True
        ws = self._ws
        self._ws = None
        for task in (self._reader, self._heartbeat, self._reconnect_task):
            if task is not None and task is not asyncio.current_task():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._reader = None
        self._heartbeat = None
        self._reconnect_task = None
        self._channels.clear()
        for fut in self._pending.values():
            if not fut.done():
                fut.cancel()
        self._pending.clear()
        if ws is not None and not ws.closed:
            await ws.close()

    async def _send(self, message: dict[str, Any]) -> None:
        ws = self._ws
        if ws is None or ws.closed:
            raise TransientGatewayError("Realtime socket is not connected")
        await ws.send_str(json.dumps(message, separators=(",", ":")))

    def _join_message(
        self, handle: ChannelHandle, event_filter: Condition, *, ref: str | None = None
    ) -> dict[str, Any]:
        return build_join_message(
            channel_key=handle.channel_key,
            relation=handle.relation,
            schema=self._config.schema,
            event_filter=event_filter,
            ref=ref or handle.ref,
            access_token=self._config.bearer_token,
        )

    async def join(
        self,
        channel_key: str,
        relation: str,
        event_filter: Condition,
        on_event: ChangeCallback,
    ) -> ChannelHandle:
        await self.start()
        ref = self._next_ref()
        handle = ChannelHandle(channel_key=channel_key, relation=relation, ref=ref)
        fut: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[ref] = fut
        self._channels[channel_topic(channel_key)] = _Channel(
            handle=handle, event_filter=event_filter, on_event=on_event
        )
        try:
            await self._send(self._join_message(handle, event_filter))
            reply = await asyncio.wait_for(fut, self._config.realtime_join_timeout)
        except (TimeoutError, TransientGatewayError):
            self._drop_channel(handle)
            raise
        finally:
            self._pending.pop(ref, None)

        if reply.get("status") != "ok":
            self._drop_channel(handle)
            response = reply.get("response")
            reason = response.get("reason") if isinstance(response, dict) else None
            raise GatewayError(f"Channel {channel_key} join refused: {reason or reply}", relation=relation)
        self._logger.debug("Realtime channel joined key=%s relation=%s", channel_key, relation)
        return handle

    def _drop_channel(self, handle: ChannelHandle) -> bool:
        topic = channel_topic(handle.channel_key)
        current = self._channels.get(topic)
        # A newer join on the same key owns the topic now.
        if current is None or current.handle.ref != handle.ref:
            return False
        del self._channels[topic]
        return True

    async def leave(self, handle: ChannelHandle) -> None:
        if not self._drop_channel(handle):
            return
        if not self.is_running:
            return
        try:
            await self._send(
                {"topic": channel_topic(handle.channel_key), "event": "phx_leave", "payload": {}, "ref": self._next_ref()}
            )
        except TransientGatewayError:
            self._logger.debug("Realtime leave failed key=%s", handle.channel_key, exc_info=True)
        self._logger.debug("Realtime channel left key=%s", handle.channel_key)

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self._config.realtime_heartbeat)
            try:
                await self._send({"topic": _PHOENIX_TOPIC, "event": "heartbeat", "payload": {}, "ref": self._next_ref()})
            except TransientGatewayError:
                self._logger.debug("Realtime heartbeat failed", exc_info=True)

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        async for raw in ws:
            if raw.type != aiohttp.WSMsgType.TEXT:
                if raw.type in (aiohttp.WSMsgType.ERROR, aiohttp.WSMsgType.CLOSED):
                    break
                continue
            message = parse_message(raw.data)
            if message is None:
                self._logger.debug("Realtime payload parse failure")
                continue
            self.dispatch(message)
        self._logger.debug("Realtime socket closed")
        if self._stopping or self._ws is not ws:
            return
        if self._reconnect_task is None or self._reconnect_task.done():
            self._reconnect_task = asyncio.create_task(self._reconnect())

    async def _reconnect(self) -> None:
        delay = self._config.realtime_reconnect_delay
        while True:
            await asyncio.sleep(delay)
            async with self._start_lock:
                if self._stopping:
                    return
                try:
                    await self._ensure_connected()
                except TransientGatewayError:
                    self._logger.debug("Realtime reconnect failed", exc_info=True)
                # The new socket may already have dropped while channels were rejoined.
                if self.is_running:
                    self._logger.debug("Realtime reconnected channels=%d", len(self._channels))
                    return
            delay = min(delay * 2, self._config.realtime_reconnect_max_delay)

    async def _rejoin(self) -> None:
        # Replies to these refs have no waiter and are dropped by dispatch.
        for channel in list(self._channels.values()):
            try:
                await self._send(self._join_message(channel.handle, channel.event_filter, ref=self._next_ref()))
            except TransientGatewayError:
                self._logger.debug("Realtime rejoin failed key=%s", channel.handle.channel_key, exc_info=True)

    def dispatch(self, message: RealtimeMessage) -> None:
        """Route one decoded message to its join waiter or channel callback."""
        if message.event == "phx_reply" and message.ref is not None:
            fut = self._pending.get(message.ref)
            if fut is not None and not fut.done():
                fut.set_result(message.payload)
            return

        channel = self._channels.get(message.topic)
        if channel is None:
            return
        if message.event in ("phx_error", "phx_close"):
            self._logger.debug("Realtime channel %s event=%s", message.topic, message.event)
            return
        event = change_event_from_message(message, channel.handle)
        if event is None:
            return
        try:
            channel.on_event(event)
        except Exception:
            self._logger.debug("Realtime change callback failed", exc_info=True)
