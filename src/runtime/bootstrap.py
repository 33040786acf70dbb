"""
Turn a configuration document into a live RuntimeInstance.

Construction is all-or-nothing: on the first failure everything already
started is torn down and that first error is raised.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional, Union

from configuration.builder import parse_robot_config
from models.config import ComponentConfig, RobotConfig
from runtime import protocol
from runtime.deadline import Deadline
from runtime.errors import (
    BootstrapError,
    CallError,
    ComponentBindError,
    ConfigInvalid,
    ModuleLaunchError,
)
from runtime.instance import ComponentBinding, RuntimeInstance
from runtime.module_process import ModuleProcess

DEFAULT_BOOTSTRAP_TIMEOUT_S = 30.0
DEFAULT_CLEANUP_TIMEOUT_S = 10.0


def check_executables(config: RobotConfig) -> None:
    """
    Raises:
        ConfigInvalid: a local module path is missing or not executable.
    """
    for module in config.modules:
        if not module.is_local:
            continue
        path = module.executable_path or ""
        if not os.path.isfile(path):
            raise ConfigInvalid(f"module {module.name}: executable not found: {path}")
        if not os.access(path, os.X_OK):
            raise ConfigInvalid(f"module {module.name}: not executable: {path}")


def dependency_order(components: List[ComponentConfig]) -> List[ComponentConfig]:
    """Components sorted so that dependencies come first; ties keep config order."""
    by_name = {c.name: c for c in components}
    ordered: List[ComponentConfig] = []
    seen = set()

    def visit(component: ComponentConfig) -> None:
        if component.name in seen:
            return
        seen.add(component.name)
        for dep in component.depends_on:
            visit(by_name[dep])
        ordered.append(component)

    for component in components:
        visit(component)
    return ordered


def _bind_component(
    instance: RuntimeInstance,
    component: ComponentConfig,
    deadline: Deadline,
    logger: logging.Logger,
) -> None:
    module = next(
        (m for m in instance.modules.values() if m.serves(component.api, component.model)),
        None,
    )
    if module is None:
        raise ComponentBindError(
            f"no module serves {component.api}/{component.model} for component {component.name}"
        )
    if deadline.expired():
        raise ComponentBindError(f"deadline exceeded before binding component {component.name}")

    logger.info(f"Adding {component.name} ({component.model}) to module {module.name}")
    try:
        module.call(
            protocol.METHOD_ADD_RESOURCE,
            {"config": component.to_dict()},
            timeout=deadline.remaining(),
        )
    except CallError as e:
        raise ComponentBindError(f"module {module.name} rejected component {component.name}: {e}") from e

    instance._add_component(ComponentBinding(config=component, module=module))


def bootstrap(
    configuration: Union[RobotConfig, Dict[str, Any], str],
    deadline: Union[Deadline, float, None] = None,
    logger: Optional[logging.Logger] = None,
    cleanup_timeout: float = DEFAULT_CLEANUP_TIMEOUT_S,
) -> RuntimeInstance:
    """
    Validate the configuration, launch its modules and construct its components.

    Args:
        configuration: RobotConfig, plain dict, or JSON text.
        deadline: Deadline or seconds for the whole bootstrap.
        cleanup_timeout: Budget for tearing down a partial instance.

    Raises:
        ConfigInvalid: the document violates an invariant.
        ModuleLaunchError: a module could not be started or handshaken.
        ComponentBindError: a component could not be constructed.
    """
    log = logger or logging.getLogger(__name__)
    deadline = Deadline.coerce(deadline, DEFAULT_BOOTSTRAP_TIMEOUT_S)

    config = parse_robot_config(configuration)
    check_executables(config)

    instance = RuntimeInstance(config, logger=log)
    try:
        for module_cfg in config.modules:
            if not module_cfg.is_local:
                raise ModuleLaunchError(
                    f"module {module_cfg.name}: registry module {module_cfg.module_id} cannot be fetched by this runtime"
                )
            module = ModuleProcess(module_cfg, logger=log)
            instance._add_module(module)
            module.start(deadline)

        for component in dependency_order(config.components):
            _bind_component(instance, component, deadline, log)
    except BootstrapError as e:
        log.error(f"Bootstrap failed: {e}")
        instance.close(timeout=cleanup_timeout)
        raise

    log.info(
        f"Runtime ready with {len(instance.modules)} module(s) and "
        f"{len(instance.resource_names())} component(s) in {deadline.elapsed():.2f}s"
    )
    return instance
