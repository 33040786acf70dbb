"""
A live runtime built from a RobotConfig.

The instance owns every module subprocess and every component binding.
Clients only route calls through it and must never tear it down.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from models.config import ComponentConfig, RobotConfig
from runtime import protocol
from runtime.deadline import Deadline
from runtime.errors import CallError, ComponentNotFound
from runtime.module_process import ModuleProcess

DEFAULT_CLOSE_TIMEOUT_S = 10.0


@dataclass
class ComponentBinding:
    """A constructed component and the module process serving it."""
    config: ComponentConfig
    module: ModuleProcess

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def api(self) -> str:
        return self.config.api

    @property
    def model(self) -> str:
        return self.config.model


class RuntimeInstance:
    """
    Holds the module processes and component graph of one scenario.

    Lifecycle:
        1. Created by runtime.bootstrap.bootstrap()
        2. Serves capability calls via call()
        3. close() releases every subprocess; safe to call multiple times

    Can also be used as a context manager.
    """

    def __init__(self, config: RobotConfig, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.modules: Dict[str, ModuleProcess] = {}
        self._components: Dict[str, ComponentBinding] = {}
        self._lock = threading.Lock()
        self._closed = False
        self.teardown_errors: List[Exception] = []

    @property
    def is_alive(self) -> bool:
        return not self._closed

    def resource_names(self) -> List[str]:
        return list(self._components)

    def resource(self, name: str) -> ComponentBinding:
        """
        Raises:
            ComponentNotFound: no component with that name exists.
        """
        binding = self._components.get(name)
        if binding is None:
            raise ComponentNotFound(
                f"resource {name!r} not found; available: {', '.join(self._components) or 'none'}"
            )
        return binding

    def call(self, name: str, method: str, params: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> Any:
        """Dispatch a capability method to the module serving component `name`."""
        if self._closed:
            raise CallError(f"runtime is closed; cannot call {method} on {name}", method=method)
        binding = self.resource(name)
        payload = {"name": name}
        payload.update(params or {})
        return binding.module.call(method, payload, timeout=timeout)

    def _add_module(self, module: ModuleProcess) -> None:
        self.modules[module.name] = module

    def _add_component(self, binding: ComponentBinding) -> None:
        self._components[binding.name] = binding

    def close(self, timeout: float = DEFAULT_CLOSE_TIMEOUT_S) -> List[Exception]:
        """
        Remove every component and stop every module within `timeout`.

        Errors are collected, logged and returned rather than raised so a
        teardown problem never hides an earlier failure.
        """
        with self._lock:
            if self._closed:
                return list(self.teardown_errors)
            self._closed = True

        deadline = Deadline(timeout)
        errors: List[Exception] = []

        for name, binding in reversed(list(self._components.items())):
            if not binding.module.is_running():
                continue
            try:
                binding.module.call(
                    protocol.METHOD_REMOVE_RESOURCE,
                    {"name": name},
                    timeout=min(1.0, deadline.remaining()),
                )
            except CallError as e:
                self.logger.warning(f"Failed to remove resource {name}: {e}")
                errors.append(e)

        modules = list(self.modules.values())
        for i, module in enumerate(modules):
            # share what is left of the budget between the remaining modules
            share = deadline.remaining() / max(1, len(modules) - i)
            try:
                module.stop(share)
            except Exception as e:
                self.logger.error(f"Failed to stop module {module.name}: {e}")
                errors.append(e)

        self._components.clear()
        self.teardown_errors = errors
        if errors:
            self.logger.warning(f"Runtime closed with {len(errors)} teardown error(s)")
        else:
            self.logger.info("Runtime closed")
        return list(errors)

    def __enter__(self) -> "RuntimeInstance":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
