"""
Line-delimited JSON protocol spoken between the host and module processes.

Requests travel over the module's stdin, responses come back on its stdout.
Modules keep stdout for protocol traffic and log to stderr.

    request:  {"id": 7, "method": "get_image", "params": {"name": "cam"}}
    response: {"id": 7, "result": {...}}
              {"id": 7, "error": {"message": "..."}}
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = 1

METHOD_READY = "ready"
METHOD_ADD_RESOURCE = "add_resource"
METHOD_REMOVE_RESOURCE = "remove_resource"
METHOD_GET_IMAGE = "get_image"
METHOD_GET_IMAGES = "get_images"
METHOD_GET_PROPERTIES = "get_properties"
METHOD_SHUTDOWN = "shutdown"


def encode_request(request_id: int, method: str, params: Optional[Dict[str, Any]] = None) -> bytes:
    message = {"id": request_id, "method": method, "params": params or {}}
    return (json.dumps(message) + "\n").encode("utf-8")


def encode_response(
    request_id: Optional[int],
    result: Any = None,
    error: Optional[str] = None,
) -> bytes:
    message: Dict[str, Any] = {"id": request_id}
    if error is not None:
        message["error"] = {"message": error}
    else:
        message["result"] = result
    return (json.dumps(message) + "\n").encode("utf-8")


def decode_message(raw: bytes) -> Optional[Dict[str, Any]]:
    """
    Parse one line. Returns None for blank lines or anything that is not a
    protocol message (stray prints from a module, say).
    """
    try:
        text = raw.decode("utf-8").strip() if isinstance(raw, bytes) else raw.strip()
    except UnicodeDecodeError:
        logger.warning("Discarding non-UTF-8 line from module")
        return None
    if not text:
        return None

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logger.debug(f"Module output: {text[:200]}")
        return None

    if not isinstance(data, dict) or "id" not in data:
        logger.debug(f"Ignoring message without id: {text[:200]}")
        return None

    return data


def is_request(message: Dict[str, Any]) -> bool:
    return "method" in message


def error_message(message: Dict[str, Any]) -> Optional[str]:
    """The error text of a response, or None if it succeeded."""
    error = message.get("error")
    if error is None:
        return None
    if isinstance(error, dict):
        return str(error.get("message") or "unknown module error")
    return str(error)
