"""
Operational helpers: logging setup and child process management.
"""
