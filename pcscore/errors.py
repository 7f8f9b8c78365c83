# pcscore/errors.py
from __future__ import annotations

from typing import Optional


class PcsError(Exception):
	"""Base class for failures that end a command with a tagged error message."""


class UnknownCommandError(PcsError):
	def __init__(self, command: str):
		self.command = command
		super().__init__(f"Unknown command: {command}")


class MissingArgumentError(PcsError):
	def __init__(self, command: str, argument: str):
		self.command = command
		self.argument = argument
		super().__init__(f"Missing argument '{argument}' for command '{command}'")


class ProcessFailedError(PcsError):
	"""The pcs tool exited non-zero. `detail` is stderr, else stdout."""
	def __init__(self, action: str, exit_code: Optional[int], detail: str):
		self.action = action
		self.exit_code = exit_code
		self.detail = detail
		super().__init__(f"{action} failed: {detail}")


class OutputParseError(PcsError):
	"""The pcs tool succeeded but its output could not be turned into data."""
	def __init__(self, what: str, reason: str):
		self.what = what
		self.reason = reason
		super().__init__(f"Failed to parse {what}: {reason}")
