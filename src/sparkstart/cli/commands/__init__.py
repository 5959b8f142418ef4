#!/usr/bin/env python3
"""
CLI Commands Package for spark-start

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from .plan import plan
from .start import start
from .stop import stop

__all__ = ["start", "plan", "stop"]
