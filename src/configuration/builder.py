"""
Robot configuration document builder and structural validation.

The builder is pure: it never touches the filesystem. Checks that need I/O
(is the executable there, can we run it) belong to the bootstrapper.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from models.config import (
    CAMERA_API,
    CSI_PI_MODEL,
    DEFAULT_MODULE_NAME,
    MODULE_TYPE_LOCAL,
    MODULE_TYPE_REGISTRY,
    MODULE_TYPES,
    ComponentConfig,
    ModuleConfig,
    RobotConfig,
)
from runtime.errors import ConfigInvalid


def build_camera_config(
    component_name: str,
    executable_path: Union[str, Path],
    module_name: str = DEFAULT_MODULE_NAME,
    api: str = CAMERA_API,
    model: str = CSI_PI_MODEL,
    attributes: Optional[Mapping[str, Any]] = None,
) -> RobotConfig:
    """
    Describe one camera component served by one local module.

    Raises:
        ConfigInvalid: component_name or executable_path is empty.
    """
    if not component_name or not str(component_name).strip():
        raise ConfigInvalid("component name must be a non-empty string")
    if executable_path is None or not str(executable_path).strip():
        raise ConfigInvalid("executable path must be a non-empty string")
    if not module_name:
        raise ConfigInvalid("module name must be a non-empty string")

    component = ComponentConfig(
        name=component_name,
        api=api,
        model=model,
        attributes=dict(attributes or {}),
        depends_on=[],
    )
    module = ModuleConfig(
        name=module_name,
        type=MODULE_TYPE_LOCAL,
        executable_path=str(executable_path),
    )
    return RobotConfig(components=[component], modules=[module])


def build_config_document(
    component_name: str,
    executable_path: Union[str, Path],
    **kwargs: Any,
) -> str:
    """Same as build_camera_config, serialized to JSON."""
    return build_camera_config(component_name, executable_path, **kwargs).to_json()


def _find_cycle(graph: Dict[str, List[str]]) -> Optional[List[str]]:
    """Return one dependency cycle as a list of names, or None."""
    visiting, done = set(), set()
    stack: List[str] = []

    def visit(node: str) -> Optional[List[str]]:
        visiting.add(node)
        stack.append(node)
        for dep in graph.get(node, []):
            if dep in visiting:
                return stack[stack.index(dep):] + [dep]
            if dep not in done:
                cycle = visit(dep)
                if cycle:
                    return cycle
        stack.pop()
        visiting.discard(node)
        done.add(node)
        return None

    for name in graph:
        if name not in done:
            cycle = visit(name)
            if cycle:
                return cycle
    return None


def validate_robot_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate the structure of a configuration document.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(config, dict):
        return False, "configuration must be a JSON object"

    components = config.get("components")
    modules = config.get("modules")
    if not isinstance(components, list):
        return False, "Missing required configuration section: components"
    if not isinstance(modules, list):
        return False, "Missing required configuration section: modules"

    names: List[str] = []
    for i, comp in enumerate(components):
        if not isinstance(comp, dict):
            return False, f"components[{i}] must be an object"
        name = comp.get("name")
        if not isinstance(name, str) or not name:
            return False, f"components[{i}].name must be a non-empty string"
        if name in names:
            return False, f"duplicate component name: {name}"
        names.append(name)
        for key in ("api", "model"):
            if not isinstance(comp.get(key), str) or not comp.get(key):
                return False, f"components[{i}].{key} must be a non-empty string"
        if not isinstance(comp.get("attributes", {}), dict):
            return False, f"components[{i}].attributes must be an object"
        deps = comp.get("depends_on", [])
        if not isinstance(deps, list) or not all(isinstance(d, str) for d in deps):
            return False, f"components[{i}].depends_on must be a list of names"

    graph: Dict[str, List[str]] = {}
    for comp in components:
        deps = list(comp.get("depends_on") or [])
        for dep in deps:
            if dep == comp["name"]:
                return False, f"component {dep} depends on itself"
            if dep not in names:
                return False, f"component {comp['name']} depends on unknown component {dep}"
        graph[comp["name"]] = deps

    cycle = _find_cycle(graph)
    if cycle:
        return False, "dependency cycle: " + " -> ".join(cycle)

    module_names: List[str] = []
    for i, mod in enumerate(modules):
        if not isinstance(mod, dict):
            return False, f"modules[{i}] must be an object"
        name = mod.get("name")
        if not isinstance(name, str) or not name:
            return False, f"modules[{i}].name must be a non-empty string"
        if name in module_names:
            return False, f"duplicate module name: {name}"
        module_names.append(name)
        mod_type = mod.get("type", MODULE_TYPE_LOCAL)
        if mod_type not in MODULE_TYPES:
            return False, f"modules[{i}].type must be one of: {', '.join(MODULE_TYPES)}"
        if mod_type == MODULE_TYPE_LOCAL:
            path = mod.get("executable_path")
            if not isinstance(path, str) or not path:
                return False, f"modules[{i}].executable_path is required for local modules"
        if mod_type == MODULE_TYPE_REGISTRY:
            module_id = mod.get("module_id")
            if not isinstance(module_id, str) or not module_id:
                return False, f"modules[{i}].module_id is required for registry modules"

    return True, None


def parse_robot_config(config: Union[RobotConfig, Dict[str, Any], str]) -> RobotConfig:
    """
    Accept a RobotConfig, a dict or a JSON string and return a validated RobotConfig.

    Raises:
        ConfigInvalid: The document is not JSON or fails validation.
    """
    if isinstance(config, RobotConfig):
        doc = config.to_dict()
    elif isinstance(config, str):
        try:
            doc = json.loads(config)
        except json.JSONDecodeError as e:
            raise ConfigInvalid(f"configuration is not valid JSON: {e}") from e
    else:
        doc = config

    is_valid, error = validate_robot_config(doc)
    if not is_valid:
        raise ConfigInvalid(error)
    return RobotConfig.from_dict(doc)
