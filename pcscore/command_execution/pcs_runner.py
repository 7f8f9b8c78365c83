# pcscore/command_execution/pcs_runner.py
from __future__ import annotations

import asyncio
import codecs
import logging
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional

logger = logging.getLogger(__name__)

READ_SIZE = 4096


@dataclass
class ProcessResult:
	exit_code: int
	stdout: str
	stderr: str

	@property
	def ok(self) -> bool:
		return self.exit_code == 0

	def detail(self, fallback: str = "unknown error") -> str:
		return self.stderr.strip() or self.stdout.strip() or fallback


class PcsProcess:
	"""
	One running invocation of the pcs tool.

	stdout is consumed through `chunks()` as it arrives; stderr is drained in
	the background so a chatty stderr can never block the child. `wait()` gives
	the exit code with everything captured on both streams.
	"""
	def __init__(self, proc: asyncio.subprocess.Process, argv: List[str]):
		self.argv = argv
		self._proc = proc
		self._stdout: List[str] = []
		self._stderr: List[str] = []
		self._stdout_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
		self._stdout_done = False
		self._result: Optional[ProcessResult] = None
		self._stderr_task = asyncio.create_task(self._drain_stderr())

	@property
	def subcommand(self) -> str:
		return self.argv[1] if len(self.argv) > 1 else ""

	@property
	def pid(self) -> Optional[int]:
		return self._proc.pid

	@property
	def returncode(self) -> Optional[int]:
		return self._proc.returncode

	async def _drain_stderr(self) -> None:
		decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
		assert self._proc.stderr is not None
		while True:
			data = await self._proc.stderr.read(READ_SIZE)
			if not data:
				break
			self._stderr.append(decoder.decode(data))
		self._stderr.append(decoder.decode(b"", final=True))

	async def chunks(self) -> AsyncIterator[str]:
		"""
		Yield decoded stdout text as soon as the child writes it.

		A consumer may stop early; a later `chunks()` or `wait()` picks up
		where it left off, with the decoder state kept across calls.
		"""
		assert self._proc.stdout is not None
		while not self._stdout_done:
			data = await self._proc.stdout.read(READ_SIZE)
			if not data:
				self._stdout_done = True
				text = self._stdout_decoder.decode(b"", final=True)
			else:
				text = self._stdout_decoder.decode(data)
			if text:
				self._stdout.append(text)
				yield text

	async def wait(self) -> ProcessResult:
		"""Drain both streams, reap the child and return its result. Safe to call twice."""
		if self._result is not None:
			return self._result
		async for _ in self.chunks():
			pass
		await self._stderr_task
		code = await self._proc.wait()
		self._result = ProcessResult(exit_code=code, stdout="".join(self._stdout), stderr="".join(self._stderr))
		logger.debug("pcs.exit cmd=%s code=%s out_len=%d err_len=%d",
					 self.subcommand, code, len(self._result.stdout), len(self._result.stderr))
		return self._result


class PcsRunner:
	"""Launches the pcs executable. No timeouts: a hung child hangs its caller."""
	def __init__(self, executable: str):
		self.executable = executable

	async def start(self, *args: str) -> PcsProcess:
		argv = [self.executable, *args]
		logger.debug("pcs.exec cmd=%s argc=%d", args[0] if args else "", len(args))
		proc = await asyncio.create_subprocess_exec(
			*argv,
			stdin=asyncio.subprocess.DEVNULL,
			stdout=asyncio.subprocess.PIPE,
			stderr=asyncio.subprocess.PIPE,
		)
		return PcsProcess(proc, argv)

	async def run(self, *args: str) -> ProcessResult:
		process = await self.start(*args)
		return await process.wait()
