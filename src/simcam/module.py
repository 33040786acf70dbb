"""
Module executable serving simulated CSI cameras over the line protocol.

Usage:
    python -m simcam [--model viam:camera:csi-pi] [--warmup 0.5]

Fault flags exist so the host runtime can be exercised against misbehaving
modules: --exit-code, --hang, --ignore-sigterm, --reject, --fork.
"""

from __future__ import annotations

import argparse
import logging
import signal
import subprocess
import sys
import time
from typing import Any, BinaryIO, Callable, Dict, List, Optional

from models.camera import MIME_TYPE_JPEG
from models.config import CAMERA_API, CSI_PI_MODEL
from runtime import protocol

from .camera import SimulatedCSICamera

logger = logging.getLogger("simcam")


class ModuleService:
    """Dispatches protocol requests to the simulated cameras it hosts."""

    def __init__(
        self,
        models: List[str],
        default_warmup_s: float = 0.0,
        reject_construction: bool = False,
        ignore_shutdown: bool = False,
    ):
        self.models = list(models)
        self.default_warmup_s = default_warmup_s
        self.reject_construction = reject_construction
        self.ignore_shutdown = ignore_shutdown
        self.cameras: Dict[str, SimulatedCSICamera] = {}
        self.running = True
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Any]] = {
            protocol.METHOD_READY: self._ready,
            protocol.METHOD_ADD_RESOURCE: self._add_resource,
            protocol.METHOD_REMOVE_RESOURCE: self._remove_resource,
            protocol.METHOD_GET_IMAGE: self._get_image,
            protocol.METHOD_GET_IMAGES: self._get_images,
            protocol.METHOD_GET_PROPERTIES: self._get_properties,
            protocol.METHOD_SHUTDOWN: self._shutdown,
        }

    def handle(self, message: Dict[str, Any]) -> bytes:
        """Run one request and return the encoded response line."""
        request_id = message.get("id")
        method = message.get("method")
        handler = self._handlers.get(method)
        if handler is None:
            return protocol.encode_response(request_id, error=f"unknown method: {method}")
        try:
            result = handler(message.get("params") or {})
        except (KeyError, TypeError, ValueError, RuntimeError) as e:
            logger.warning(f"{method} failed: {e}")
            return protocol.encode_response(request_id, error=str(e))
        return protocol.encode_response(request_id, result=result)

    def serve(self, stdin: BinaryIO, stdout: BinaryIO) -> None:
        for line in iter(stdin.readline, b""):
            message = protocol.decode_message(line)
            if message is None or not protocol.is_request(message):
                continue
            stdout.write(self.handle(message))
            stdout.flush()
            if not self.running:
                break
        logger.info("Module service exiting")

    def _camera(self, params: Dict[str, Any]) -> SimulatedCSICamera:
        name = params.get("name")
        if name not in self.cameras:
            raise KeyError(f"resource {name!r} not found")
        return self.cameras[name]

    def _ready(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "protocol": protocol.PROTOCOL_VERSION,
            "models": [{"api": CAMERA_API, "model": m} for m in self.models],
        }

    def _add_resource(self, params: Dict[str, Any]) -> Dict[str, Any]:
        config = params.get("config") or {}
        name = config.get("name")
        if not name:
            raise ValueError("resource config has no name")
        if config.get("model") not in self.models:
            raise ValueError(f"model {config.get('model')} is not served by this module")
        if self.reject_construction:
            raise RuntimeError("failed to create the capture pipeline")

        attrs = dict(config.get("attributes") or {})
        attrs.setdefault("warmup_s", self.default_warmup_s)
        if name in self.cameras:
            logger.info(f"Reconfiguring camera {name}")
            self.cameras[name].configure(attrs)
        else:
            logger.info(f"Creating camera {name}")
            self.cameras[name] = SimulatedCSICamera(name, attrs)
        return {}

    def _remove_resource(self, params: Dict[str, Any]) -> Dict[str, Any]:
        self._camera(params)
        logger.info(f"Removing camera {params['name']}")
        del self.cameras[params["name"]]
        return {}

    def _get_image(self, params: Dict[str, Any]) -> Dict[str, Any]:
        camera = self._camera(params)
        return camera.get_image(params.get("mime_type") or MIME_TYPE_JPEG).to_dict()

    def _get_images(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return self._camera(params).get_images()

    def _get_properties(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return self._camera(params).get_properties().to_dict()

    def _shutdown(self, params: Dict[str, Any]) -> Dict[str, Any]:
        if self.ignore_shutdown:
            logger.warning("Ignoring shutdown request")
            return {}
        self.running = False
        return {}


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Simulated CSI camera module")
    parser.add_argument("--model", action="append", default=None,
                        help=f"Model to register (repeatable, default: {CSI_PI_MODEL})")
    parser.add_argument("--warmup", type=float, default=0.0,
                        help="Seconds before cameras deliver frames")
    parser.add_argument("--exit-code", type=int, default=None,
                        help="Exit immediately with this code")
    parser.add_argument("--hang", action="store_true",
                        help="Never answer any request")
    parser.add_argument("--ignore-sigterm", action="store_true",
                        help="Ignore SIGTERM and shutdown requests")
    parser.add_argument("--reject", action="store_true",
                        help="Refuse to construct any resource")
    parser.add_argument("--fork", action="store_true",
                        help="Serve from a forked child and wait for it, like an AppImage runtime")
    parser.add_argument("--log-level", type=str, default="INFO")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    logger.info("### STARTING SIMULATED CSI CAMERA MODULE")

    if args.fork:
        child_argv = [a for a in (sys.argv[1:] if argv is None else argv) if a != "--fork"]
        logger.info("Serving from a child process")
        return subprocess.call([sys.executable, "-m", "simcam", *child_argv])

    if args.exit_code is not None:
        logger.error(f"Exiting with code {args.exit_code} as requested")
        return args.exit_code

    if args.ignore_sigterm:
        signal.signal(signal.SIGTERM, signal.SIG_IGN)

    if args.hang:
        logger.warning("Hanging; requests will not be answered")
        while True:
            time.sleep(3600)

    service = ModuleService(
        models=args.model or [CSI_PI_MODEL],
        default_warmup_s=args.warmup,
        reject_construction=args.reject,
        ignore_shutdown=args.ignore_sigterm,
    )

    service.serve(sys.stdin.buffer, sys.stdout.buffer)
    if args.ignore_sigterm:
        while True:
            time.sleep(3600)
    return 0
