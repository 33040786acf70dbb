"""
CSI camera module integration harness.

Locates the built module, bootstraps a runtime with one camera component
bound to it, and checks that GetImage, GetImages and GetProperties work.

Modules are driven over the line-delimited JSON protocol in
runtime/protocol.py (ready, add_resource, get_image, get_images,
get_properties, shutdown on stdin/stdout). A build passed with
--module-path or found under --base-dir must speak that protocol; a stock
viam_csi-cam-pi build talks gRPC to viam-server and fails bootstrap.

Usage:
    python src/main.py --config config/config.yaml
    python src/main.py --module-path etc/squashfs-root/AppRun
    python src/main.py --simulate

Arguments:
    --config: Path to configuration file
    --module-path: Use this executable instead of searching --base-dir
    --base-dir: Directory holding the extracted AppRun or *.AppImage
    --strict: Fail when several archives match instead of picking the first
    --simulate: Run against the bundled simulated CSI module
    --log-level: Override the configured log level

Exit codes: 0 all checks passed, 1 a check failed, 2 setup error.
"""

import argparse
import logging
import sys
import tempfile
from typing import List, Optional

from configuration.settings import VALID_LOG_LEVELS, load_settings
from ops.logging import setup_logging
from runtime.errors import HarnessError
from scenario.camera_scenario import run_camera_scenario
from simcam.launcher import write_extracted_layout

EXIT_OK = 0
EXIT_CHECK_FAILED = 1
EXIT_SETUP_ERROR = 2

PROTOCOL_NOTE = (
    "Module builds must speak the line-delimited JSON protocol in runtime/protocol.py "
    "over stdin/stdout. A stock viam-server module build (gRPC) is not supported."
)


def main(argv: Optional[List[str]] = None) -> int:
    """Main application function."""
    parser = argparse.ArgumentParser(description='CSI camera module integration harness',
                                     epilog=PROTOCOL_NOTE)
    parser.add_argument('--config', type=str, default=None,
                        help='Path to configuration file (overrides config/default.yaml)')
    parser.add_argument('--module-path', type=str, default=None,
                        help='Module executable to test (must speak the JSON-lines module protocol)')
    parser.add_argument('--base-dir', type=str, default=None,
                        help='Directory to search for a JSON-lines protocol module build')
    parser.add_argument('--strict', action='store_true',
                        help='Reject ambiguous archive matches')
    parser.add_argument('--simulate', action='store_true',
                        help='Test the simulated CSI module instead of a build')
    parser.add_argument('--warmup', type=float, default=0.5,
                        help='Simulated module warm-up in seconds (with --simulate)')
    parser.add_argument('--log-level', type=str, default=None, choices=VALID_LOG_LEVELS,
                        help='Log level')
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
    except HarnessError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_SETUP_ERROR

    if args.log_level:
        settings.log_level = args.log_level
    if args.base_dir:
        settings.locator.base_dir = args.base_dir
    if args.strict:
        settings.locator.strict = True

    setup_logging(settings.log_path, settings.log_level)
    logger = logging.getLogger("csi-cam-tests")

    try:
        if args.simulate:
            with tempfile.TemporaryDirectory(prefix="simcam-") as tmp:
                module_path = write_extracted_layout(tmp, args=["--warmup", str(args.warmup)])
                report = run_camera_scenario(settings, module_path=module_path, logger=logger)
        else:
            report = run_camera_scenario(settings, module_path=args.module_path, logger=logger)
    except HarnessError as e:
        logger.error(f"Scenario setup failed: {e}")
        return EXIT_SETUP_ERROR

    print(report.summary())
    return EXIT_OK if report.passed else EXIT_CHECK_FAILED


if __name__ == "__main__":
    sys.exit(main())
