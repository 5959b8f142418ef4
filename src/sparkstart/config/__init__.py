"""
Layered configuration for sparkstart.

Layers (low to high priority):
1. presets/defaults.json - built-in defaults
2. User file (--config-file, JSON or YAML)
3. User CLI (--config JSON string, then explicit flags)

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from .loader import ConfigLoader

__all__ = ["ConfigLoader"]
