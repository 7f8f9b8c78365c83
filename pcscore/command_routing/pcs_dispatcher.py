# pcscore/command_routing/pcs_dispatcher.py
from __future__ import annotations

import logging
import os
import posixpath
from typing import Any, AsyncIterator, Callable, Dict, Optional, Union

from pcscore.command_execution.pcs_runner import PcsRunner, ProcessResult
from pcscore.errors import (
	PcsError,
	MissingArgumentError,
	OutputParseError,
	ProcessFailedError,
	UnknownCommandError,
)
from pcscore.parsing.output_parsers import (
	parse_download_progress,
	parse_ls_output,
	parse_quota_output,
	parse_who_output,
)
from pcscore.parsing.progress import ProgressTracker

logger = logging.getLogger(__name__)

RequestId = Union[str, int, None]
Message = Dict[str, Any]
Handler = Callable[[Dict[str, Any]], AsyncIterator[Message]]


def _require(command: str, args: Dict[str, Any], key: str) -> str:
	val = args.get(key)
	if val is None or (isinstance(val, str) and not val):
		raise MissingArgumentError(command, key)
	return str(val)


def _check(action: str, result: ProcessResult) -> ProcessResult:
	if not result.ok:
		raise ProcessFailedError(action, result.exit_code, result.detail())
	return result


class CommandDispatcher:
	"""
	Maps a command name to a handler and turns the handler's outcome into
	response messages tagged with the caller's request id.

	Every handler is an async generator of messages. Most yield exactly one
	success message; `download` yields a start message, progress messages and
	then its completion message. Any exception raised while a handler runs
	becomes a single tagged error message, so each request ends with exactly
	one terminal response.
	"""
	def __init__(self, runner: PcsRunner, download_dir: str, download_retry: int = 3):
		self.runner = runner
		self.download_dir = download_dir
		self.download_retry = download_retry
		self.handlers: Dict[str, Handler] = {
			"login":    self._cmd_login,
			"ls":       self._cmd_ls,
			"download": self._cmd_download,
			"mkdir":    self._cmd_mkdir,
			"rm":       self._cmd_rm,
			"quota":    self._cmd_quota,
			"mv":       self._cmd_mv,
			"cp":       self._cmd_cp,
			"who":      self._cmd_who,
		}

	async def dispatch(self, command: str, args: Optional[Dict[str, Any]], request_id: RequestId) -> AsyncIterator[Message]:
		try:
			handler = self.handlers.get(command)
			if handler is None:
				raise UnknownCommandError(command)
			async for msg in handler(args or {}):
				yield _tag(msg, request_id)
		except PcsError as e:
			logger.info("dispatch.failed command=%s req_id=%r err=%s", command, request_id, e)
			yield _tag({"type": "error", "message": str(e)}, request_id)
		except Exception as e:
			logger.exception("dispatch.error command=%s req_id=%r", command, request_id)
			yield _tag({"type": "error", "message": str(e) or e.__class__.__name__}, request_id)

	# ---------- handlers ----------

	async def _cmd_login(self, args: Dict[str, Any]) -> AsyncIterator[Message]:
		# The credential is handed to the tool as-is; the tool decides if it is valid.
		bduss = args.get("bduss")
		result = _check("Login", await self.runner.run("login", "-bduss", "" if bduss is None else str(bduss)))
		yield {"type": "login_success", "message": _with_output("Login succeeded", result)}

	async def _cmd_ls(self, args: Dict[str, Any]) -> AsyncIterator[Message]:
		path = str(args.get("path") or "/")
		result = _check("Listing files", await self.runner.run("ls", path))
		try:
			entries = parse_ls_output(result.stdout, path)
		except Exception as e:
			raise OutputParseError("file list", str(e)) from e
		yield {"type": "file_list", "data": [e.to_dict() for e in entries], "path": path}

	async def _cmd_download(self, args: Dict[str, Any]) -> AsyncIterator[Message]:
		remote = _require("download", args, "path")
		filename = str(args.get("filename") or posixpath.basename(remote.rstrip("/")) or "download")
		local_path = os.path.join(self.download_dir, _local_name(filename, remote))

		logger.info("download.begin remote=%s local=%s", remote, local_path)
		yield {"type": "download_start", "filename": filename}

		process = await self.runner.start(
			"download", "--retry", str(self.download_retry), remote, "--save", local_path,
		)
		tracker = ProgressTracker()
		try:
			async for chunk in process.chunks():
				logger.debug("download.chunk pid=%s len=%d", process.pid, len(chunk))
				sample = parse_download_progress(chunk)
				if sample is None:
					continue
				yield {
					"type": "download_progress",
					"progress": tracker.update(sample),
					"current": sample.current_size or "",
					"total": sample.total_size or "",
					"speed": sample.speed or "",
					"remaining": sample.remaining or "",
				}
		finally:
			# Always reap the child, even when the loop above is abandoned.
			result = await process.wait()

		_check("Download", result)
		logger.info("download.end remote=%s local=%s", remote, local_path)
		yield {"type": "download_complete", "message": "Download complete", "localPath": local_path}

	async def _cmd_mkdir(self, args: Dict[str, Any]) -> AsyncIterator[Message]:
		path = _require("mkdir", args, "path")
		result = _check("Creating directory", await self.runner.run("mkdir", path))
		yield {"type": "mkdir_success", "message": _with_output("Directory created", result)}

	async def _cmd_rm(self, args: Dict[str, Any]) -> AsyncIterator[Message]:
		path = _require("rm", args, "path")
		result = _check("Delete", await self.runner.run("rm", path))
		yield {"type": "delete_success", "message": _with_output("Deleted", result)}

	async def _cmd_quota(self, args: Dict[str, Any]) -> AsyncIterator[Message]:
		result = _check("Fetching quota", await self.runner.run("quota"))
		yield {"type": "quota_info", "data": parse_quota_output(result.stdout).to_dict()}

	async def _cmd_mv(self, args: Dict[str, Any]) -> AsyncIterator[Message]:
		src, dst = _require("mv", args, "from"), _require("mv", args, "to")
		result = _check("Move", await self.runner.run("mv", src, dst))
		yield {"type": "move_success", "message": _with_output("Moved", result)}

	async def _cmd_cp(self, args: Dict[str, Any]) -> AsyncIterator[Message]:
		src, dst = _require("cp", args, "from"), _require("cp", args, "to")
		result = _check("Copy", await self.runner.run("cp", src, dst))
		yield {"type": "copy_success", "message": _with_output("Copied", result)}

	async def _cmd_who(self, args: Dict[str, Any]) -> AsyncIterator[Message]:
		result = _check("Fetching account info", await self.runner.run("who"))
		yield {"type": "who_info", "data": parse_who_output(result.stdout).to_dict()}


_UNSAFE_NAMES = ("", ".", "..")


def _local_name(filename: str, remote: str) -> str:
	"""Single path segment to save under the download dir; never `.`, `..` or empty."""
	name = os.path.basename(filename.replace("\\", "/").rstrip("/"))
	if name in _UNSAFE_NAMES:
		name = posixpath.basename(remote.rstrip("/"))
	if name in _UNSAFE_NAMES:
		name = "download"
	return name


def _with_output(text: str, result: ProcessResult) -> str:
	out = result.stdout.strip()
	return f"{text}: {out}" if out else text


def _tag(msg: Message, request_id: RequestId) -> Message:
	if request_id is not None:
		msg["requestId"] = request_id
	return msg
