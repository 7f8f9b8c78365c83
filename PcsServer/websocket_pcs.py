# PcsServer/websocket_pcs.py
from __future__ import annotations

import asyncio
import uuid
from typing import Any, Dict, Optional, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from pcscore.command_routing.pcs_dispatcher import CommandDispatcher
from .connections import ConnectionRegistry
from .schemas import RequestEnvelope
from .logutil import get_logger, bind, span, safe_preview, redacts

logger = get_logger("backend.websocket_pcs", file_basename="pcs_ws")

router = APIRouter()

STATUS_CONNECTED = "Connected to BaiduPCS-Go web backend"
MALFORMED_MESSAGE = "Malformed message"


def _args_preview(env: RequestEnvelope) -> Dict[str, Any]:
	args = dict(env.args or {})
	if "bduss" in args:
		args["bduss"] = redacts(str(args["bduss"] or ""), show=4)
	return args


class Relay:
	"""
	Bridges UI WebSockets and the command dispatcher.

	Each decoded request runs as its own task so a long download never blocks
	other commands on the same connection. Tasks are not cancelled when the
	client goes away; their late writes are dropped by the registry.
	"""
	def __init__(self, dispatcher: CommandDispatcher, registry: Optional[ConnectionRegistry] = None):
		self.dispatcher = dispatcher
		self.registry = registry if registry is not None else ConnectionRegistry()
		self._inflight: Set[asyncio.Task] = set()

	async def connect(self, ws: WebSocket, log) -> None:
		await ws.accept()
		self.registry.add(ws)
		log.info("ws.connect", extra={"clients": len(self.registry)})
		await self.registry.send(ws, {"type": "status", "message": STATUS_CONNECTED}, log)

	def disconnect(self, ws: WebSocket, log) -> None:
		self.registry.discard(ws)
		log.info("ws.disconnect", extra={"clients": len(self.registry), "inflight": len(self._inflight)})

	async def receive(self, ws: WebSocket, txt: str, log) -> None:
		try:
			env = RequestEnvelope.model_validate_json(txt)
		except ValidationError:
			log.warning("ws.recv.malformed", extra={"len": len(txt), "preview": safe_preview(txt, limit=120)})
			await self.registry.send(ws, {"type": "error", "message": MALFORMED_MESSAGE}, log)
			return

		log.debug("ws.recv", extra={"command": env.command, "req_id": env.request_id, "cmd_args": _args_preview(env)})
		task = asyncio.create_task(self.handle(ws, env, log))
		self._inflight.add(task)
		task.add_done_callback(self._inflight.discard)

	async def handle(self, ws: WebSocket, env: RequestEnvelope, log) -> None:
		with span(log, "pcs.command", command=env.command, req_id=env.request_id):
			async for msg in self.dispatcher.dispatch(env.command, env.args, env.request_id):
				await self.registry.send(ws, msg, log)


async def _serve(ws: WebSocket):
	relay: Relay = ws.app.state.relay
	client = None
	try:
		client = f"{ws.client.host}:{ws.client.port}"  # type: ignore[union-attr]
	except AttributeError:
		pass
	log = bind(logger, wsid=uuid.uuid4().hex[:8], client=client)

	await relay.connect(ws, log)
	try:
		while True:
			msg = await ws.receive()
			if msg["type"] == "websocket.disconnect":
				break
			if msg.get("text") is not None:
				await relay.receive(ws, msg["text"], log)
			elif msg.get("bytes") is not None:
				await relay.receive(ws, msg["bytes"].decode("utf-8", errors="replace"), log)
	except WebSocketDisconnect:
		pass
	finally:
		relay.disconnect(ws, log)


@router.websocket("/")
async def pcs_ws_root(ws: WebSocket):
	await _serve(ws)


@router.websocket("/ws")
async def pcs_ws(ws: WebSocket):
	await _serve(ws)
