# PcsServer/logutil.py
from __future__ import annotations
import json, logging, os, time
from logging.handlers import RotatingFileHandler
from contextlib import contextmanager

# LogRecord attributes that are not user-supplied `extra=` fields
_STD_KEYS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

def _ensure_dir(p: str) -> None:
    try:
        os.makedirs(p, exist_ok=True)
    except OSError:
        pass

def _extras(record: logging.LogRecord):
    for k, v in record.__dict__.items():
        if k in _STD_KEYS or k.startswith("_"):
            continue
        yield k, v

class JSONLFormatter(logging.Formatter):
    """One compact JSON object per line: ts (epoch ms), lvl, name, msg + extras."""
    def format(self, record: logging.LogRecord) -> str:
        base = {
            "ts": int(record.created * 1000),
            "lvl": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        for k, v in _extras(record):
            try:
                json.dumps(v)
                base[k] = v
            except (TypeError, ValueError):
                base[k] = repr(v)
        if record.exc_info:
            base["exc"] = self.formatException(record.exc_info)
        return json.dumps(base, separators=(",", ":"), ensure_ascii=False, default=str)

class ConsoleFormatter(logging.Formatter):
    """HH:MM:SS LEVEL [name] msg k=v ..."""
    def format(self, record: logging.LogRecord) -> str:
        ts = time.strftime("%H:%M:%S", time.localtime(record.created))
        extras = " ".join(f"{k}={safe_preview(v, limit=160)}" for k, v in _extras(record))
        line = f"{ts} {record.levelname.ljust(5)} [{record.name}] {record.getMessage()}"
        if extras:
            line += " " + extras
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line

def get_logger(name: str,
               file_basename: str = "pcsweb",
               *,
               level: str | None = None,
               log_dir: str | None = None) -> logging.Logger:
    """
    Logger with a console handler and a rotating JSONL file handler.

    Environment:
      LOG_LEVEL (logger), LOG_LEVEL_CONSOLE, LOG_LEVEL_FILE,
      LOG_DIR (default "logs"), LOG_MAX_BYTES, LOG_BACKUP_COUNT
    """
    logger = logging.getLogger(name)
    if getattr(logger, "_logutil_configured", False):
        return logger

    logger.setLevel(level or os.getenv("LOG_LEVEL", "DEBUG"))

    ch = logging.StreamHandler()
    ch.setLevel(os.getenv("LOG_LEVEL_CONSOLE", "INFO"))
    ch.setFormatter(ConsoleFormatter())
    logger.addHandler(ch)

    log_dir = log_dir or os.getenv("LOG_DIR", "logs")
    _ensure_dir(log_dir)
    fh = RotatingFileHandler(os.path.join(log_dir, f"{file_basename}.log"),
                             maxBytes=int(os.getenv("LOG_MAX_BYTES", "10485760")),
                             backupCount=int(os.getenv("LOG_BACKUP_COUNT", "5")),
                             encoding="utf-8")
    fh.setLevel(os.getenv("LOG_LEVEL_FILE", "DEBUG"))
    fh.setFormatter(JSONLFormatter())
    logger.addHandler(fh)

    logger.propagate = False
    logger._logutil_configured = True  # type: ignore[attr-defined]
    return logger

class ContextAdapter(logging.LoggerAdapter):
    """Merges bound context (wsid, client, ...) into every record's extras."""
    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs

def bind(logger: logging.Logger | ContextAdapter, **ctx) -> ContextAdapter:
    if isinstance(logger, ContextAdapter):
        return ContextAdapter(logger.logger, {**logger.extra, **ctx})
    return ContextAdapter(logger, ctx)

def safe_preview(val, *, limit: int = 256) -> str:
    s = str(val)
    return s if len(s) <= limit else (s[:limit] + "…")

def redacts(s: str | None, show: int = 4) -> str:
    if not s:
        return ""
    if len(s) <= show:
        return "*" * len(s)
    return s[:show] + "…" + "*" * max(0, len(s) - show - 1)

@contextmanager
def span(logger: logging.Logger | ContextAdapter, event: str, **fields):
    """Log <event>.begin / <event>.end with dur_ms, or <event>.error on raise."""
    t0 = time.perf_counter()
    logger.info(f"{event}.begin", extra=fields)
    try:
        yield
    except Exception:
        logger.exception(f"{event}.error", extra=fields)
        raise
    dur_ms = int((time.perf_counter() - t0) * 1000)
    logger.info(f"{event}.end", extra={**fields, "dur_ms": dur_ms})
