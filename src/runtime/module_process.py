"""
One module executable running as a child process.

The host writes requests to the child's stdin and a reader thread resolves
the matching futures as responses arrive on stdout. Any number of threads
may call() concurrently; writes are serialized and responses are matched by
request id.
"""

from __future__ import annotations

import itertools
import logging
import os
import subprocess
import threading
from concurrent.futures import Future, InvalidStateError, TimeoutError as FutureTimeout
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from models.config import ModuleConfig
from ops.logging import module_logger
from ops.process import terminate_process
from runtime import protocol
from runtime.deadline import Deadline
from runtime.errors import CallError, ModuleLaunchError

# Time given to a module to answer the shutdown request before it is signalled
SHUTDOWN_REQUEST_S = 1.0
# How long to wait for an exit code after a module closes its output early
EXIT_CHECK_S = 0.5


class ModuleState(Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    READY = "ready"
    STOPPING = "stopping"
    CRASHED = "crashed"


@dataclass(frozen=True)
class ModelRegistration:
    """An (api, model) pair a module says it can construct."""
    api: str
    model: str

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelRegistration":
        return cls(api=str(d.get("api", "")), model=str(d.get("model", "")))


class ModuleProcess:
    """Lifecycle and request multiplexing for one module subprocess."""

    def __init__(self, config: ModuleConfig, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self._module_log = module_logger(config.name, self.logger)

        self.process: Optional[subprocess.Popen] = None
        self.state = ModuleState.STOPPED
        self.models: List[ModelRegistration] = []
        self.protocol_version: Optional[int] = None

        self._ids = itertools.count(1)
        self._pending: Dict[int, Future] = {}
        self._pending_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._threads: List[threading.Thread] = []

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    def is_running(self) -> bool:
        return self.process is not None and self.process.poll() is None

    def serves(self, api: str, model: str) -> bool:
        return ModelRegistration(api, model) in self.models

    def start(self, deadline: Deadline) -> List[ModelRegistration]:
        """
        Launch the executable and complete the ready handshake.

        Raises:
            ModuleLaunchError: spawn failure, early exit or handshake timeout.
        """
        if self.process is not None:
            raise ModuleLaunchError(f"module {self.name} already started")

        path = self.config.executable_path
        self.logger.info(f"Starting module {self.name}: {path}")
        self.state = ModuleState.STARTING

        try:
            self.process = subprocess.Popen(
                [path],
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=os.path.dirname(path) or None,
                start_new_session=True,
            )
        except OSError as e:
            self.state = ModuleState.CRASHED
            raise ModuleLaunchError(f"failed to start module {self.name}: {e}") from e

        self.logger.info(f"Module {self.name} started with PID {self.process.pid}")
        self._spawn_reader(self._stdout_reader, "stdout")
        self._spawn_reader(self._stderr_reader, "stderr")

        try:
            result = self.call(protocol.METHOD_READY, timeout=deadline.remaining())
        except CallError as e:
            returncode = self._wait_exit(0.0 if deadline.expired() else EXIT_CHECK_S)
            if returncode is not None:
                message = f"module {self.name} exited with code {returncode} during handshake"
            elif deadline.expired():
                message = f"module {self.name} handshake timed out after {deadline.elapsed():.2f}s"
            else:
                message = f"module {self.name} handshake failed: {e}"
            self.state = ModuleState.CRASHED
            raise ModuleLaunchError(message) from e

        result = result or {}
        self.protocol_version = result.get("protocol")
        self.models = [ModelRegistration.from_dict(m) for m in result.get("models") or []]
        self.state = ModuleState.READY
        self.logger.info(
            f"Module {self.name} ready; models: "
            + (", ".join(f"{m.api}/{m.model}" for m in self.models) or "none")
        )
        return self.models

    def call(self, method: str, params: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> Any:
        """
        Send one request and wait for its response.

        Raises:
            CallError: the module is gone, reported an error, or did not
                answer within timeout.
        """
        proc = self.process
        if proc is None or proc.poll() is not None:
            raise CallError(f"module {self.name} is not running", method=method)

        request_id = next(self._ids)
        future: Future = Future()
        with self._pending_lock:
            self._pending[request_id] = future

        try:
            line = protocol.encode_request(request_id, method, params)
            try:
                with self._write_lock:
                    proc.stdin.write(line)
                    proc.stdin.flush()
            except (OSError, ValueError) as e:
                raise CallError(f"failed to send {method} to module {self.name}: {e}", method=method) from e

            try:
                return future.result(timeout=timeout)
            except FutureTimeout:
                raise CallError(f"{method} timed out after {timeout or 0:.2f}s", method=method) from None
        finally:
            with self._pending_lock:
                self._pending.pop(request_id, None)

    def stop(self, timeout: float) -> bool:
        """
        Ask the module to exit, then terminate it if it does not.
        Safe to call repeatedly.

        Returns:
            True if the process had to be force killed.
        """
        proc = self.process
        if proc is None:
            return False
        if self.state == ModuleState.STOPPED:
            return False

        self.logger.info(f"Stopping module {self.name}")
        self.state = ModuleState.STOPPING
        deadline = Deadline(timeout)

        if proc.poll() is None:
            try:
                self.call(protocol.METHOD_SHUTDOWN, timeout=min(SHUTDOWN_REQUEST_S, deadline.remaining()))
            except CallError as e:
                self.logger.debug(f"Module {self.name} did not acknowledge shutdown: {e}")

        try:
            forced = terminate_process(proc, deadline.remaining(), logger=self.logger, group=True)
        finally:
            self._close_stream(proc.stdin)
            for thread in self._threads:
                thread.join(timeout=max(0.1, deadline.remaining()))
            # a reader still blocked in readline holds the stream lock; leave it to the daemon thread
            if not any(t.is_alive() for t in self._threads):
                self._close_stream(proc.stdout)
                self._close_stream(proc.stderr)
            self._fail_pending(f"module {self.name} stopped")
            self.state = ModuleState.STOPPED

        self.logger.info(f"Module {self.name} stopped (exit code {proc.returncode})")
        return forced

    def _spawn_reader(self, target, stream: str) -> None:
        thread = threading.Thread(
            target=target,
            name=f"module-{self.name}-{stream}",
            daemon=True,
        )
        thread.start()
        self._threads.append(thread)

    def _stdout_reader(self) -> None:
        proc = self.process
        try:
            for line in iter(proc.stdout.readline, b""):
                message = protocol.decode_message(line)
                if message is None or protocol.is_request(message):
                    continue
                with self._pending_lock:
                    future = self._pending.get(message.get("id"))
                if future is None or future.done():
                    self.logger.debug(f"Dropping late response {message.get('id')} from {self.name}")
                    continue
                error = protocol.error_message(message)
                try:
                    if error is not None:
                        future.set_exception(CallError(error))
                    else:
                        future.set_result(message.get("result"))
                except InvalidStateError:
                    pass
        except (OSError, ValueError) as e:
            self.logger.debug(f"stdout reader for {self.name} stopped: {e}")
        finally:
            if self.state not in (ModuleState.STOPPING, ModuleState.STOPPED):
                returncode = proc.poll()
                self.logger.error(f"Module {self.name} closed its output (exit code {returncode})")
                self.state = ModuleState.CRASHED
            self._fail_pending(f"module {self.name} exited")

    def _stderr_reader(self) -> None:
        proc = self.process
        try:
            for line in iter(proc.stderr.readline, b""):
                text = line.decode("utf-8", errors="replace").rstrip()
                if text:
                    self._module_log.info(text)
        except (OSError, ValueError) as e:
            self.logger.debug(f"stderr reader for {self.name} stopped: {e}")

    def _fail_pending(self, reason: str) -> None:
        with self._pending_lock:
            pending = list(self._pending.values())
        for future in pending:
            try:
                future.set_exception(CallError(reason))
            except InvalidStateError:
                pass

    def _wait_exit(self, timeout: float) -> Optional[int]:
        try:
            return self.process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    @staticmethod
    def _close_stream(stream) -> None:
        if stream is None:
            return
        try:
            stream.close()
        except OSError:
            pass
