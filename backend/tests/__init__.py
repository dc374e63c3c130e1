# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Test Suite for the FlashFusion workflow engine

Structure:
- workflow/: Engine internals (expressions, edges, handlers, executor)
- unit/: Services, store, config
- api/: HTTP routes via TestClient
"""
