"""
Camera package.

Canonical imports:
- `from camera.camera import client_for, decode_image_from_camera`
- `from camera.client import CameraClient`
"""
