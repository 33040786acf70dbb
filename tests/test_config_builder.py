"""
Tests for the robot configuration builder and structural validation.
"""

import json

import pytest

from configuration.builder import (
    build_camera_config,
    build_config_document,
    parse_robot_config,
    validate_robot_config,
)
from models.config import RobotConfig
from runtime.errors import ConfigInvalid


class TestBuildCameraConfig:
    @pytest.mark.parametrize("name,path", [
        ("csi-cam-1", "/opt/etc/squashfs-root/AppRun"),
        ("front camera", "relative/module.AppImage"),
        ("cam_2", "C:\\modules\\csi.exe"),
    ])
    def test_name_and_path_land_in_place(self, name, path):
        doc = json.loads(build_config_document(name, path))

        assert doc["components"][0]["name"] == name
        assert doc["modules"][0]["executable_path"] == path

    def test_round_trip(self):
        config = build_camera_config("csi-cam-1", "/opt/AppRun", attributes={"width_px": 640})

        restored = RobotConfig.from_json(config.to_json())

        assert restored == config
        assert restored.to_dict() == config.to_dict()

    def test_literal_camera_document(self):
        doc = json.loads(build_config_document("csi-cam-1", "/opt/AppRun"))

        assert doc == {
            "components": [
                {
                    "name": "csi-cam-1",
                    "api": "rdk:component:camera",
                    "model": "viam:camera:csi-pi",
                    "attributes": {},
                    "depends_on": [],
                }
            ],
            "modules": [
                {
                    "type": "local",
                    "name": "viam_csi-cam-pi",
                    "executable_path": "/opt/AppRun",
                }
            ],
        }

    def test_built_config_is_valid(self):
        config = build_camera_config("csi-cam-1", "/opt/AppRun")

        is_valid, error = validate_robot_config(config.to_dict())

        assert is_valid is True
        assert error is None

    def test_attributes_are_copied(self):
        attrs = {"width_px": 640}
        config = build_camera_config("cam", "/opt/AppRun", attributes=attrs)
        attrs["width_px"] = 1

        assert config.components[0].attributes == {"width_px": 640}

    @pytest.mark.parametrize("name,path", [
        ("", "/opt/AppRun"),
        ("   ", "/opt/AppRun"),
        ("cam", ""),
        ("cam", None),
    ])
    def test_rejects_empty_inputs(self, name, path):
        with pytest.raises(ConfigInvalid):
            build_camera_config(name, path)

    def test_does_not_touch_filesystem(self, tmp_path):
        """A path that does not exist is fine for the pure builder."""
        config = build_camera_config("cam", str(tmp_path / "missing"))

        assert config.modules[0].executable_path.endswith("missing")


class TestValidateRobotConfig:
    def test_valid_config_passes(self, camera_config_dict):
        is_valid, error = validate_robot_config(camera_config_dict)

        assert is_valid is True
        assert error is None

    def test_missing_components(self, camera_config_dict):
        del camera_config_dict["components"]

        is_valid, error = validate_robot_config(camera_config_dict)

        assert is_valid is False
        assert "components" in error

    def test_missing_modules(self, camera_config_dict):
        del camera_config_dict["modules"]

        is_valid, error = validate_robot_config(camera_config_dict)

        assert is_valid is False
        assert "modules" in error

    def test_duplicate_component_names(self, camera_config_dict):
        camera_config_dict["components"].append(dict(camera_config_dict["components"][0]))

        is_valid, error = validate_robot_config(camera_config_dict)

        assert is_valid is False
        assert "duplicate" in error

    def test_unknown_dependency(self, camera_config_dict):
        camera_config_dict["components"][0]["depends_on"] = ["board-1"]

        is_valid, error = validate_robot_config(camera_config_dict)

        assert is_valid is False
        assert "board-1" in error

    def test_self_dependency(self, camera_config_dict):
        camera_config_dict["components"][0]["depends_on"] = ["csi-cam-1"]

        is_valid, error = validate_robot_config(camera_config_dict)

        assert is_valid is False
        assert "itself" in error

    def test_dependency_cycle(self, camera_config_dict):
        comps = camera_config_dict["components"]
        comps[0]["depends_on"] = ["b"]
        comps.append({"name": "b", "api": "rdk:component:board", "model": "m", "depends_on": ["c"]})
        comps.append({"name": "c", "api": "rdk:component:board", "model": "m", "depends_on": ["csi-cam-1"]})

        is_valid, error = validate_robot_config(camera_config_dict)

        assert is_valid is False
        assert "cycle" in error

    def test_acyclic_dependencies_pass(self, camera_config_dict):
        comps = camera_config_dict["components"]
        comps[0]["depends_on"] = ["b"]
        comps.append({"name": "b", "api": "rdk:component:board", "model": "m"})

        is_valid, error = validate_robot_config(camera_config_dict)

        assert is_valid is True

    def test_missing_model(self, camera_config_dict):
        camera_config_dict["components"][0]["model"] = ""

        is_valid, error = validate_robot_config(camera_config_dict)

        assert is_valid is False
        assert "model" in error

    def test_local_module_needs_path(self, camera_config_dict):
        del camera_config_dict["modules"][0]["executable_path"]

        is_valid, error = validate_robot_config(camera_config_dict)

        assert is_valid is False
        assert "executable_path" in error

    def test_registry_module_needs_id(self, camera_config_dict):
        camera_config_dict["modules"] = [{"type": "registry", "name": "csi"}]

        is_valid, error = validate_robot_config(camera_config_dict)

        assert is_valid is False
        assert "module_id" in error

    def test_unknown_module_type(self, camera_config_dict):
        camera_config_dict["modules"][0]["type"] = "remote"

        is_valid, error = validate_robot_config(camera_config_dict)

        assert is_valid is False
        assert "type" in error

    def test_attributes_must_be_mapping(self, camera_config_dict):
        camera_config_dict["components"][0]["attributes"] = ["width_px"]

        is_valid, error = validate_robot_config(camera_config_dict)

        assert is_valid is False
        assert "attributes" in error


class TestParseRobotConfig:
    def test_accepts_json_text(self, camera_config_dict):
        config = parse_robot_config(json.dumps(camera_config_dict))

        assert config.components[0].name == "csi-cam-1"
        assert config.modules[0].is_local

    def test_accepts_robot_config(self):
        built = build_camera_config("cam", "/opt/AppRun")

        assert parse_robot_config(built) == built

    def test_rejects_bad_json(self):
        with pytest.raises(ConfigInvalid) as excinfo:
            parse_robot_config("{not json")

        assert "JSON" in str(excinfo.value)

    def test_rejects_invalid_document(self, camera_config_dict):
        camera_config_dict["components"][0]["name"] = ""

        with pytest.raises(ConfigInvalid):
            parse_robot_config(camera_config_dict)

    def test_config_invalid_is_value_error(self):
        with pytest.raises(ValueError):
            parse_robot_config([])
