# PcsServer/connections.py
from __future__ import annotations

import json
from typing import Any, Dict, Set

from fastapi import WebSocket

from .logutil import get_logger

logger = get_logger("backend.connections", file_basename="pcs_ws")


class ConnectionRegistry:
    """The set of open UI WebSockets. Owned by the relay, never a module global."""

    def __init__(self):
        self._clients: Set[WebSocket] = set()

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, ws: WebSocket) -> bool:
        return ws in self._clients

    def add(self, ws: WebSocket) -> None:
        self._clients.add(ws)

    def discard(self, ws: WebSocket) -> None:
        self._clients.discard(ws)

    async def send(self, ws: WebSocket, payload: Dict[str, Any], log=logger) -> bool:
        """
        Write one JSON message. A closed or broken connection is dropped from the
        registry and the failure is swallowed; returns False in that case.
        """
        txt = json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)
        try:
            await ws.send_text(txt)
        except Exception as e:
            log.debug("ws.send.dropped", extra={"payload_type": payload.get("type"),
                                                "req_id": payload.get("requestId"), "err": repr(e)})
            self.discard(ws)
            return False
        log.debug("ws.send", extra={"payload_type": payload.get("type"),
                                    "req_id": payload.get("requestId"), "json_bytes": len(txt)})
        return True
