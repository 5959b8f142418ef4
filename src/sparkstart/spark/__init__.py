"""
Spark standalone cluster artifacts: layout, sizing and generated configuration.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from sparkstart.spark.layout import ClusterLayout
from sparkstart.spark.render import ConfigRenderer, RenderedConfig, generate_secret, master_url
from sparkstart.spark.resources import ResourcePlan, plan_resources

__all__ = [
    "ClusterLayout",
    "ConfigRenderer",
    "RenderedConfig",
    "generate_secret",
    "master_url",
    "ResourcePlan",
    "plan_resources",
]
