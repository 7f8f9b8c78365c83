# pcscore/parsing/progress.py
from __future__ import annotations

import math
import re
from typing import Optional

from .output_parsers import ProgressSample

_UNITS = {
	"B": 1,
	"KB": 1024,
	"MB": 1024 ** 2,
	"GB": 1024 ** 3,
	"TB": 1024 ** 4,
}
_SIZE_RE = re.compile(r"([\d.]+)\s*([KMGT]?B)", re.IGNORECASE)


def convert_to_bytes(size: Optional[str]) -> int:
	"""'1.5KB' -> 1536. Binary units, case-insensitive. Unparseable -> 0."""
	if not size:
		return 0
	m = _SIZE_RE.search(size)
	if not m:
		return 0
	try:
		value = float(m.group(1))
	except ValueError:
		return 0
	return int(value * _UNITS.get(m.group(2).upper(), 1))


class ProgressTracker:
	"""
	Reduces a download's progress samples to a 0-100 percent that never goes
	backwards. One tracker per download invocation.
	"""
	def __init__(self):
		self.last_percent = 0
		self.last_total: Optional[str] = None

	def update(self, sample: ProgressSample) -> int:
		if sample.total_size:
			self.last_total = sample.total_size

		percent: Optional[int] = None
		if sample.current_size and self.last_total:
			total = convert_to_bytes(self.last_total)
			if total > 0:
				percent = math.floor(convert_to_bytes(sample.current_size) / total * 100)
		elif sample.percent is not None:
			percent = sample.percent

		if percent is None:
			return self.last_percent
		percent = min(max(percent, 0), 100)
		if percent > self.last_percent:
			self.last_percent = percent
		return self.last_percent
