"""
Orchestration layer: bootstrap and teardown of a Spark standalone cluster.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from .bootstrap import BootstrapResult, BootstrapStatus, ClusterBootstrap
from .teardown import TeardownResult, stop_cluster

__all__ = [
    "BootstrapResult",
    "BootstrapStatus",
    "ClusterBootstrap",
    "TeardownResult",
    "stop_cluster",
]
