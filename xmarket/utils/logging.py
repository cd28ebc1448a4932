from __future__ import annotations

import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional


DEFAULT_EXCLUDE = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
}


def _extract_extras(record: logging.LogRecord) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    for k, v in record.__dict__.items():
        if k in DEFAULT_EXCLUDE:
            continue
        if k.startswith("_"):
            continue
        data[k] = v
    return data


def _short_hex(value: Any, keep: int = 10) -> str:
    text = str(value or "?")
    if text.startswith("0x") and len(text) > keep + 4:
        return f"{text[:keep]}…"
    return text


class JsonFormatter(logging.Formatter):
    """Structured JSON formatter with extra fields under 'extra'."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "msg": record.getMessage(),
            "logger": record.name,
            "ts": record.created,
        }
        extras = _extract_extras(record)
        if extras:
            payload["extra"] = extras
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


class HumanFormatter(logging.Formatter):
    """Console-friendly formatter with concise summaries for order lifecycle messages."""

    def format(self, record: logging.LogRecord) -> str:
        ts = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(record.created))
        logger_name = record.name
        msg = record.getMessage()
        extras = _extract_extras(record)
        summary = self._summarize(msg, extras)
        if summary:
            return f"[{ts}] ({logger_name}) {msg} | {summary}"
        parts = []
        for k, v in extras.items():
            try:
                text = json.dumps(v, ensure_ascii=False, default=str)
                if len(text) > 120:
                    text = text[:117] + "..."
            except (TypeError, ValueError):
                text = str(v)
            parts.append(f"{k}={text}")
        tail = " ".join(parts)
        return f"[{ts}] ({logger_name}) {msg}{(' | ' + tail) if tail else ''}"

    def _summarize(self, msg: str, extras: Dict[str, Any]) -> str:
        if msg == "trade_submitted":
            return (
                f"contract={_short_hex(extras.get('contract'))} fill_qty={extras.get('fill_qty')} "
                f"price={extras.get('price')} tx={_short_hex(extras.get('tx_hash'))} "
                f"block={extras.get('block_number')}"
            )

        if msg == "trade_rejected":
            return f"reason={extras.get('reason')} maker={_short_hex(extras.get('maker'))}"

        if msg == "order_resolved":
            qty = extras.get("qty")
            error = extras.get("error")
            result = f"error={error}" if error else f"qty={qty}"
            return f"{extras.get('kind')} tx={_short_hex(extras.get('tx_hash'))} {result}"

        if msg == "order_expired":
            return f"order={_short_hex(extras.get('order_hash'))} pending={extras.get('pending')}"

        return ""


def setup_logging(level: str = "INFO", log_dir: str | Path = "logs") -> None:
    root = logging.getLogger()
    root.setLevel(level.upper())

    # Console: human-readable
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(HumanFormatter())

    # File: structured JSON lines
    logs_dir = Path(log_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(logs_dir / "xmarket.jsonl", encoding="utf-8")
    file_handler.setFormatter(JsonFormatter())

    root.handlers.clear()
    root.addHandler(console)
    root.addHandler(file_handler)


def get_logger(name: str, *, level: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger(name)
    if level:
        logger.setLevel(level.upper())
    return logger


__all__ = ["setup_logging", "get_logger", "JsonFormatter", "HumanFormatter"]
