"""
Host runtime: module subprocesses, the component graph and their lifecycle.

Canonical imports:
- `from runtime.bootstrap import bootstrap`
- `from runtime.instance import RuntimeInstance`
- `from runtime.deadline import Deadline`
- `from runtime.errors import ...`
"""
