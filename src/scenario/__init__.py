"""
Capability scenarios run against a bootstrapped runtime.
"""

from .camera_scenario import CheckResult, ScenarioReport, run_camera_scenario

__all__ = ["CheckResult", "ScenarioReport", "run_camera_scenario"]
