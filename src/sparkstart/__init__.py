"""
sparkstart - bootstrap a Spark standalone cluster inside a Slurm allocation.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

__version__ = "1.0.0"
