"""
Simulated CSI camera module.

Run `python -m simcam` for a module process, or use
`simcam.launcher.write_extracted_layout()` to produce an artifact the
locator and bootstrapper treat like the real thing.
"""
