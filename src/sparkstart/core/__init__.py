"""
Core building blocks: shell command execution and structured errors.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""
