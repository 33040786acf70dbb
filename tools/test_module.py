#!/usr/bin/env python3
"""
Smoke test for a camera module build.
Bootstraps the module, prints its properties and saves a few frames so they
can be looked at by eye.

Usage:
    python tools/test_module.py --module-path etc/squashfs-root/AppRun
    python tools/test_module.py --simulate --frames 3 --out /tmp/frames
"""

import argparse
import os
import sys
import tempfile
import time

import cv2

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

from artifacts.locator import locate_module  # noqa: E402
from camera.camera import client_for, decode_image_from_camera  # noqa: E402
from configuration.builder import build_camera_config  # noqa: E402
from polling.poll import poll_until  # noqa: E402
from runtime.bootstrap import bootstrap  # noqa: E402
from runtime.errors import HarnessError  # noqa: E402
from simcam.launcher import write_extracted_layout  # noqa: E402


def main():
    """Main function for module testing."""
    parser = argparse.ArgumentParser(description='Smoke test a camera module build')
    parser.add_argument('--module-path', type=str, default=None,
                        help='Module executable (default: search --base-dir)')
    parser.add_argument('--base-dir', type=str, default='etc',
                        help='Directory holding the module build (default: etc)')
    parser.add_argument('--simulate', action='store_true',
                        help='Use the simulated CSI module')
    parser.add_argument('--resolution', type=str, default='1280x720',
                        help='Resolution in format WIDTHxHEIGHT (default: 1280x720)')
    parser.add_argument('--fps', type=int, default=30,
                        help='Target frames per second (default: 30)')
    parser.add_argument('--frames', type=int, default=5,
                        help='Number of frames to save (default: 5)')
    parser.add_argument('--out', type=str, default='frames',
                        help='Output directory for frames (default: frames)')
    args = parser.parse_args()

    try:
        width, height = map(int, args.resolution.split('x'))
    except ValueError:
        print(f"Invalid resolution format: {args.resolution}, using default 1280x720")
        width, height = 1280, 720

    with tempfile.TemporaryDirectory(prefix="simcam-") as tmp:
        try:
            if args.simulate:
                module_path = write_extracted_layout(tmp)
            elif args.module_path:
                module_path = args.module_path
            else:
                module_path = locate_module(args.base_dir)
        except HarnessError as e:
            print(f"ERROR: {e}")
            return 1

        print(f"Testing module {module_path}, resolution {width}x{height}, FPS {args.fps}")
        config = build_camera_config(
            "csi-cam-1",
            module_path,
            attributes={"width_px": width, "height_px": height, "frame_rate": args.fps},
        )

        try:
            instance = bootstrap(config, deadline=30.0)
        except HarnessError as e:
            print(f"ERROR: Failed to start module: {e}")
            return 1

        with instance:
            camera = client_for(instance, "csi-cam-1", call_timeout=5.0)

            props = camera.fetch_properties()
            print("Camera properties:")
            if props.intrinsic_parameters:
                print(f"  Resolution: {props.intrinsic_parameters.width_px}x{props.intrinsic_parameters.height_px}")
            print(f"  FPS: {props.frame_rate}")
            print(f"  Supports PCD: {props.supports_pcd}")

            os.makedirs(args.out, exist_ok=True)
            start_time = time.time()
            for i in range(args.frames):
                outcome = poll_until(
                    lambda: decode_image_from_camera(camera),
                    lambda frame: frame.size > 0,
                    timeout=5.0,
                    interval=0.1,
                    name="GetImage",
                )
                if not outcome.ok:
                    print(f"ERROR: Failed to read frame: {outcome.last_error}")
                    return 1
                frame = outcome.value
                path = os.path.join(args.out, f"frame_{i:03d}.jpg")
                cv2.imwrite(path, frame)
                print(f"Saved {path} ({frame.shape[1]}x{frame.shape[0]}, {outcome.attempts} attempt(s))")

            elapsed_time = time.time() - start_time
            if elapsed_time > 0:
                print(f"Average FPS: {args.frames / elapsed_time:.2f}")

    print("Module test completed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
