"""
Slurm integration.

Discovers the running allocation and launches steps across its nodes
using the Slurm CLI (scontrol, srun, sbcast). No Python Slurm library required.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from sparkstart.slurm.allocation import SlurmAllocation, discover_allocation, expand_hostnames
from sparkstart.slurm.launcher import SrunLauncher

__all__ = [
    "SlurmAllocation",
    "discover_allocation",
    "expand_hostnames",
    "SrunLauncher",
]
