"""
Typed configuration models.

Two documents live here:
- RobotConfig: the component/module graph handed to the runtime bootstrapper.
- HarnessSettings: the layered YAML settings that drive one scenario run.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

CAMERA_API = "rdk:component:camera"
CSI_PI_MODEL = "viam:camera:csi-pi"
DEFAULT_COMPONENT_NAME = "csi-cam-1"
DEFAULT_MODULE_NAME = "viam_csi-cam-pi"

MODULE_TYPE_LOCAL = "local"
MODULE_TYPE_REGISTRY = "registry"
MODULE_TYPES = (MODULE_TYPE_LOCAL, MODULE_TYPE_REGISTRY)


@dataclass
class ComponentConfig:
    """One named component bound to a driver model."""
    name: str
    api: str = CAMERA_API
    model: str = CSI_PI_MODEL
    attributes: Dict[str, Any] = field(default_factory=dict)
    depends_on: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ComponentConfig":
        return cls(
            name=d.get("name", ""),
            api=d.get("api", CAMERA_API),
            model=d.get("model", CSI_PI_MODEL),
            attributes=dict(d.get("attributes") or {}),
            depends_on=list(d.get("depends_on") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "api": self.api,
            "model": self.model,
            "attributes": dict(self.attributes),
            "depends_on": list(self.depends_on),
        }


@dataclass
class ModuleConfig:
    """An executable that serves one or more driver models."""
    name: str
    type: str = MODULE_TYPE_LOCAL
    executable_path: Optional[str] = None
    module_id: Optional[str] = None

    @property
    def is_local(self) -> bool:
        return self.type == MODULE_TYPE_LOCAL

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModuleConfig":
        return cls(
            name=d.get("name", ""),
            type=d.get("type", MODULE_TYPE_LOCAL),
            executable_path=d.get("executable_path"),
            module_id=d.get("module_id"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"type": self.type, "name": self.name}
        if self.executable_path is not None:
            d["executable_path"] = self.executable_path
        if self.module_id is not None:
            d["module_id"] = self.module_id
        return d


@dataclass
class RobotConfig:
    """The configuration document consumed by the runtime bootstrapper."""
    components: List[ComponentConfig] = field(default_factory=list)
    modules: List[ModuleConfig] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RobotConfig":
        return cls(
            components=[ComponentConfig.from_dict(c) for c in d.get("components") or []],
            modules=[ModuleConfig.from_dict(m) for m in d.get("modules") or []],
        )

    @classmethod
    def from_json(cls, text: str) -> "RobotConfig":
        return cls.from_dict(json.loads(text))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "components": [c.to_dict() for c in self.components],
            "modules": [m.to_dict() for m in self.modules],
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def component(self, name: str) -> Optional[ComponentConfig]:
        for c in self.components:
            if c.name == name:
                return c
        return None


@dataclass
class LocatorConfig:
    """Where to look for the module artifact."""
    base_dir: str = "etc"
    extracted_subpath: str = "squashfs-root/AppRun"
    archive_glob: str = "*.AppImage"
    strict: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LocatorConfig":
        return cls(
            base_dir=d.get("base_dir", "etc"),
            extracted_subpath=d.get("extracted_subpath", "squashfs-root/AppRun"),
            archive_glob=d.get("archive_glob", "*.AppImage"),
            strict=bool(d.get("strict", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_dir": self.base_dir,
            "extracted_subpath": self.extracted_subpath,
            "archive_glob": self.archive_glob,
            "strict": self.strict,
        }


@dataclass
class TimeoutConfig:
    """All scenario time budgets, in seconds."""
    scenario_s: float = 60.0
    bootstrap_s: float = 30.0
    poll_timeout_s: float = 5.0
    poll_interval_s: float = 0.1
    call_timeout_s: float = 2.0
    teardown_s: float = 10.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TimeoutConfig":
        return cls(
            scenario_s=float(d.get("scenario_s", 60.0)),
            bootstrap_s=float(d.get("bootstrap_s", 30.0)),
            poll_timeout_s=float(d.get("poll_timeout_s", 5.0)),
            poll_interval_s=float(d.get("poll_interval_s", 0.1)),
            call_timeout_s=float(d.get("call_timeout_s", 2.0)),
            teardown_s=float(d.get("teardown_s", 10.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario_s": self.scenario_s,
            "bootstrap_s": self.bootstrap_s,
            "poll_timeout_s": self.poll_timeout_s,
            "poll_interval_s": self.poll_interval_s,
            "call_timeout_s": self.call_timeout_s,
            "teardown_s": self.teardown_s,
        }


@dataclass
class HarnessSettings:
    """Complete settings for one scenario run."""
    component_name: str = DEFAULT_COMPONENT_NAME
    component_api: str = CAMERA_API
    component_model: str = CSI_PI_MODEL
    module_name: str = DEFAULT_MODULE_NAME
    attributes: Dict[str, Any] = field(default_factory=dict)
    locator: LocatorConfig = field(default_factory=LocatorConfig)
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    log_path: str = "logs/harness.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "HarnessSettings":
        return cls(
            component_name=d.get("component_name", DEFAULT_COMPONENT_NAME),
            component_api=d.get("component_api", CAMERA_API),
            component_model=d.get("component_model", CSI_PI_MODEL),
            module_name=d.get("module_name", DEFAULT_MODULE_NAME),
            attributes=dict(d.get("attributes") or {}),
            locator=LocatorConfig.from_dict(d.get("locator") or {}),
            timeouts=TimeoutConfig.from_dict(d.get("timeouts") or {}),
            log_path=d.get("log_path", "logs/harness.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component_name": self.component_name,
            "component_api": self.component_api,
            "component_model": self.component_model,
            "module_name": self.module_name,
            "attributes": dict(self.attributes),
            "locator": self.locator.to_dict(),
            "timeouts": self.timeouts.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
