# efm_core/jsonio.py
from __future__ import annotations
import json, logging, sys
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional


def enable_json_logging():
    """Send logs to stderr and keep stdout for the JSON payload only."""
    for h in logging.root.handlers[:]:
        logging.root.removeHandler(h)
    logging.basicConfig(stream=sys.stderr, level=logging.ERROR)


def _json_default(value: Any):
    # checksums are bytes in the catalog, hex in every payload
    if isinstance(value, (bytes, bytearray)):
        return value.hex()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Enum):
        return value.name.lower()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _emit(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False, default=_json_default), file=sys.stdout)
    sys.stdout.flush()


def success(command: str, data: Dict[str, Any] | list | None = None,
            meta: Optional[Dict[str, Any]] = None, code: int = 0) -> int:
    payload = {"result": "success", "command": command, "data": data if data is not None else {}}
    if meta:
        payload["meta"] = meta
    _emit(payload)
    return code


def error(command: str, message: str, debug: Optional[Dict[str, Any]] = None, code: int = 1) -> int:
    payload = {"result": "error", "command": command, "error": message}
    if debug:
        payload["debug"] = debug
    _emit(payload)
    return code
