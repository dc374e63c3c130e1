# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
FlashFusion workflow engine.

Walks workflow graphs of typed nodes (trigger, ai_task, api_call,
condition, transform, end) and records every run.
"""

__version__ = "0.1.0"
