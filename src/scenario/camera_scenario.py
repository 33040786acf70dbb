"""
The camera readiness scenario.

Locate the module, describe one camera bound to it, bootstrap a runtime and
check that each capability method eventually works:

- GetImage: polled until an image decodes to a non-empty frame
- GetImages: polled until a non-empty batch with metadata comes back
- GetProperties: a single synchronous call (static driver metadata)

Setup failures (locator, configuration, bootstrap) propagate. Check
failures are reported per check with their timing context.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union

from artifacts.locator import locate_module
from camera.camera import client_for, decode_image_from_camera
from camera.client import CameraClient
from configuration.builder import build_camera_config
from models.camera import MIME_TYPE_JPEG
from models.config import HarnessSettings
from polling.poll import PollOutcome, poll_until
from runtime.bootstrap import bootstrap
from runtime.deadline import Deadline
from runtime.errors import CallError

CHECK_GET_IMAGE = "GetImage"
CHECK_GET_IMAGES = "GetImages"
CHECK_GET_PROPERTIES = "GetProperties"


@dataclass
class CheckResult:
    """Outcome of one named capability check."""
    name: str
    passed: bool
    elapsed_s: float
    timeout_s: float
    attempts: int = 1
    detail: str = ""

    def describe(self) -> str:
        status = "PASS" if self.passed else "FAIL"
        line = (
            f"[{status}] {self.name}: {self.attempts} attempt(s) in {self.elapsed_s:.2f}s "
            f"(deadline {self.timeout_s:.2f}s)"
        )
        if self.detail:
            line += f" - {self.detail}"
        return line


@dataclass
class ScenarioReport:
    """Everything a scenario run produced."""
    module_path: str
    component_name: str
    checks: List[CheckResult] = field(default_factory=list)
    teardown_errors: List[str] = field(default_factory=list)
    elapsed_s: float = 0.0

    @property
    def passed(self) -> bool:
        return bool(self.checks) and all(c.passed for c in self.checks)

    @property
    def failed_checks(self) -> List[CheckResult]:
        return [c for c in self.checks if not c.passed]

    def check(self, name: str) -> Optional[CheckResult]:
        return next((c for c in self.checks if c.name == name), None)

    def summary(self) -> str:
        lines = [f"Module: {self.module_path}", f"Component: {self.component_name}"]
        lines.extend(c.describe() for c in self.checks)
        for error in self.teardown_errors:
            lines.append(f"[WARN] teardown: {error}")
        lines.append(f"Result: {'PASS' if self.passed else 'FAIL'} in {self.elapsed_s:.2f}s")
        return "\n".join(lines)


def _from_outcome(outcome: PollOutcome, failure: str) -> CheckResult:
    return CheckResult(
        name=outcome.name,
        passed=outcome.ok,
        elapsed_s=outcome.elapsed_s,
        timeout_s=outcome.timeout_s,
        attempts=outcome.attempts,
        detail="" if outcome.ok else failure,
    )


def _poll_deadline(timeout: float, deadline: Optional[Deadline]) -> Deadline:
    return deadline.child(timeout) if deadline is not None else Deadline(timeout)


def _call_timeout(poll_deadline: Deadline, interval: float) -> float:
    """
    Per-call cap so a hung call cannot outlast the poll; never below one
    interval, which is the slack the poll itself allows.
    """
    return max(poll_deadline.remaining(), interval)


def check_get_image(
    camera: CameraClient,
    timeout: float,
    interval: float,
    deadline: Optional[Deadline] = None,
    logger: Optional[logging.Logger] = None,
) -> CheckResult:
    poll_deadline = _poll_deadline(timeout, deadline)
    outcome = poll_until(
        lambda: decode_image_from_camera(camera, MIME_TYPE_JPEG, timeout=_call_timeout(poll_deadline, interval)),
        lambda frame: frame is not None and frame.size > 0,
        timeout=timeout,
        interval=interval,
        deadline=deadline,
        name=CHECK_GET_IMAGE,
        logger=logger,
    )
    return _from_outcome(outcome, "timed out waiting for Get image method (one image)")


def check_get_images(
    camera: CameraClient,
    timeout: float,
    interval: float,
    deadline: Optional[Deadline] = None,
    logger: Optional[logging.Logger] = None,
) -> CheckResult:
    def has_images(result) -> bool:
        images, metadata = result
        return bool(images) and all(img.size > 0 for img in images) and metadata is not None

    poll_deadline = _poll_deadline(timeout, deadline)
    outcome = poll_until(
        lambda: camera.fetch_images(timeout=_call_timeout(poll_deadline, interval)),
        has_images,
        timeout=timeout,
        interval=interval,
        deadline=deadline,
        name=CHECK_GET_IMAGES,
        logger=logger,
    )
    return _from_outcome(outcome, "timed out waiting for Get images method (multiple images)")


def check_get_properties(
    camera: CameraClient,
    deadline: Optional[Deadline] = None,
    logger: Optional[logging.Logger] = None,
) -> CheckResult:
    log = logger or logging.getLogger(__name__)
    timeout = camera.effective_timeout(deadline.remaining() if deadline is not None else None)
    start = time.monotonic()
    try:
        props = camera.fetch_properties(timeout=timeout)
    except CallError as e:
        log.error(f"Failed to get camera properties: {e}")
        return CheckResult(CHECK_GET_PROPERTIES, False, time.monotonic() - start, camera.call_timeout,
                           detail="failed to get camera properties")
    elapsed = time.monotonic() - start
    if props is None:
        return CheckResult(CHECK_GET_PROPERTIES, False, elapsed, camera.call_timeout,
                           detail="driver returned no properties")
    log.info(f"Camera properties: {props}")
    return CheckResult(CHECK_GET_PROPERTIES, True, elapsed, camera.call_timeout)


def run_camera_scenario(
    settings: HarnessSettings,
    module_path: Optional[Union[str, Path]] = None,
    logger: Optional[logging.Logger] = None,
    clock: Callable[[], float] = time.monotonic,
) -> ScenarioReport:
    """
    Run the full scenario once.

    Args:
        settings: Names, locator layout and time budgets.
        module_path: Skip the locator and use this executable.

    Raises:
        ArtifactNotFound, ConfigInvalid, BootstrapError: setup failed.
    """
    log = logger or logging.getLogger(__name__)
    timeouts = settings.timeouts
    started = clock()

    log.info("Starting CSI camera integration scenario")
    if module_path is None:
        loc = settings.locator
        module_path = locate_module(
            loc.base_dir,
            extracted_subpath=loc.extracted_subpath,
            archive_glob=loc.archive_glob,
            strict=loc.strict,
            logger=log,
        )
    log.info(f"Using module path: {module_path}")

    config = build_camera_config(
        settings.component_name,
        module_path,
        module_name=settings.module_name,
        api=settings.component_api,
        model=settings.component_model,
        attributes=settings.attributes,
    )

    scenario_deadline = Deadline(timeouts.scenario_s)
    instance = bootstrap(
        config,
        scenario_deadline.child(timeouts.bootstrap_s),
        logger=log,
        cleanup_timeout=timeouts.teardown_s,
    )

    report = ScenarioReport(module_path=str(module_path), component_name=settings.component_name)
    try:
        camera = client_for(instance, settings.component_name, call_timeout=timeouts.call_timeout_s)
        try:
            report.checks.append(check_get_image(
                camera, timeouts.poll_timeout_s, timeouts.poll_interval_s, scenario_deadline, log))
            report.checks.append(check_get_images(
                camera, timeouts.poll_timeout_s, timeouts.poll_interval_s, scenario_deadline, log))
            report.checks.append(check_get_properties(camera, scenario_deadline, log))
        finally:
            camera.close()
    finally:
        errors = instance.close(timeout=timeouts.teardown_s)
        report.teardown_errors = [str(e) for e in errors]

    report.elapsed_s = clock() - started
    for check in report.checks:
        (log.info if check.passed else log.error)(check.describe())
    log.info("Completed CSI camera integration scenario")
    return report
