# pcscore/parsing/output_parsers.py
"""
Parsers for BaiduPCS-Go console output.

The tool prints human-readable, localized text with no stable grammar, so every
parser here is best-effort: a line that does not match is skipped and a block
that does not match yields an empty (or partial) result. Nothing here raises on
malformed input.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

# ---------- directory listing ----------

_LS_SKIP_PREFIXES = ("当前目录:", "----")
_LS_SKIP_MARKERS = ("文件大小", "总:")
_LS_INDEX_RE = re.compile(r"^\s*\d+\s+")


@dataclass
class DirectoryEntry:
	name: str
	is_dir: bool
	size: str            # as printed by the tool, "-" for directories
	modified: str        # "<date> <time>" as printed by the tool
	path: str

	def to_dict(self) -> Dict[str, Any]:
		# Key names are the ones the web UI reads.
		return {
			"name": self.name,
			"is_dir": self.is_dir,
			"isDir": self.is_dir,
			"size_str": self.size,
			"modified_time": self.modified,
			"path": self.path,
		}


def join_remote(parent: str, name: str) -> str:
	if parent == "/":
		return f"/{name}"
	return f"{parent}/{name}"


def parse_ls_output(text: str, current_path: str = "/") -> List[DirectoryEntry]:
	"""
	Turn the block printed by `ls <path>` into directory entries.

	Data lines look like ``  1   1.14MB  2020-01-01 12:00:00  my notes.txt``:
	a numeric index, then size, date, time and a name that may contain spaces.
	Directory names carry a trailing ``/``.
	"""
	entries: List[DirectoryEntry] = []
	for raw in (text or "").splitlines():
		line = raw.strip()
		if not line or line.startswith(_LS_SKIP_PREFIXES):
			continue
		if any(marker in line for marker in _LS_SKIP_MARKERS):
			continue
		if not _LS_INDEX_RE.match(line):
			continue

		parts = _LS_INDEX_RE.sub("", line, count=1).split()
		if len(parts) < 4:
			continue

		size, date, time_ = parts[0], parts[1], parts[2]
		raw_name = " ".join(parts[3:])
		is_dir = raw_name.endswith("/")
		name = raw_name[:-1] if is_dir else raw_name
		entries.append(DirectoryEntry(
			name=name,
			is_dir=is_dir,
			size=size,
			modified=f"{date} {time_}",
			path=join_remote(current_path, name),
		))
	return entries

# ---------- download progress ----------

_SIZE = r"([\d.]+)([KMGT]?B)"

# ↓ 512.00KB/5.27GB 56.56KB/s in 6s, left 27h7m58s
_PROGRESS_ARROW_RE = re.compile(
	r"↓\s*" + _SIZE + r"/" + _SIZE + r"\s+([\d.]+)([KMGT]?B/s).*left\s+([\dhms]+)"
)
# [1] ↓ 512.00KB/5.27GB 56.56KB/s ...
_PROGRESS_WORKER_RE = re.compile(
	r"\[\d+\]\s+↓\s*" + _SIZE + r"/" + _SIZE + r"\s+([\d.]+)([KMGT]?B/s)"
)
_PROGRESS_PERCENT_RE = re.compile(r"(\d+)(?:\.\d+)?%")
_PROGRESS_PAIR_RE = re.compile(_SIZE + r"/" + _SIZE)


@dataclass
class ProgressSample:
	current_size: Optional[str] = None
	total_size: Optional[str] = None
	speed: Optional[str] = None
	remaining: Optional[str] = None
	percent: Optional[int] = None

	def to_dict(self) -> Dict[str, Any]:
		return asdict(self)


def _match_progress_line(line: str) -> Optional[ProgressSample]:
	m = _PROGRESS_ARROW_RE.search(line)
	if m:
		return ProgressSample(
			current_size=m.group(1) + m.group(2),
			total_size=m.group(3) + m.group(4),
			speed=m.group(5) + m.group(6),
			remaining=m.group(7),
		)

	m = _PROGRESS_WORKER_RE.search(line)
	if m:
		return ProgressSample(
			current_size=m.group(1) + m.group(2),
			total_size=m.group(3) + m.group(4),
			speed=m.group(5) + m.group(6),
		)

	m = _PROGRESS_PERCENT_RE.search(line)
	if m:
		return ProgressSample(percent=int(m.group(1)))

	m = _PROGRESS_PAIR_RE.search(line)
	if m:
		return ProgressSample(
			current_size=m.group(1) + m.group(2),
			total_size=m.group(3) + m.group(4),
		)
	return None


def parse_download_progress(text: str) -> Optional[ProgressSample]:
	"""Return the first progress sample found in a stdout chunk, or None."""
	for line in (text or "").splitlines():
		sample = _match_progress_line(line)
		if sample is not None:
			return sample
	return None

# ---------- quota ----------

_QUOTA_RE = re.compile(
	r"总空间[:：]\s*([\d.]+)\s*([KMGTP]?B),\s*"
	r"已用空间[:：]\s*([\d.]+)\s*([KMGTP]?B),\s*"
	r"比率[:：]\s*([\d.]+)%"
)


@dataclass
class QuotaInfo:
	total: Optional[str] = None
	used: Optional[str] = None
	percent: Optional[str] = None

	def to_dict(self) -> Dict[str, Any]:
		return {k: v for k, v in asdict(self).items() if v is not None}


def parse_quota_output(text: str) -> QuotaInfo:
	quota = QuotaInfo()
	for line in (text or "").splitlines():
		if "总空间" not in line or "已用空间" not in line:
			continue
		m = _QUOTA_RE.search(line)
		if m:
			quota.total = m.group(1) + m.group(2)
			quota.used = m.group(3) + m.group(4)
			quota.percent = m.group(5)
	return quota

# ---------- who ----------

_WHO_USERNAME_RE = re.compile(r"用户名[:：]\s*([^,，]+)")
_WHO_UID_RE = re.compile(r"uid[:：]\s*(\d+)")


@dataclass
class WhoInfo:
	username: Optional[str] = None
	uid: Optional[str] = None

	def to_dict(self) -> Dict[str, Any]:
		return {k: v for k, v in asdict(self).items() if v is not None}


def parse_who_output(text: str) -> WhoInfo:
	info = WhoInfo()
	for line in (text or "").splitlines():
		if "用户名" in line:
			m = _WHO_USERNAME_RE.search(line)
			if m:
				info.username = m.group(1).strip()
		if "uid" in line:
			m = _WHO_UID_RE.search(line)
			if m:
				info.uid = m.group(1)
	return info
