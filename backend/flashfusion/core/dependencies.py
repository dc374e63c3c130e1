# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Dependency injection for the FlashFusion backend.

Services are built once by the application factory and stored on
``app.state``; these FastAPI dependencies hand them to the routes.
"""

from fastapi import Request


def get_workflow_service(request: Request):
    """Get WorkflowExecutionService instance."""
    return request.app.state.workflow_service


def get_analytics_service(request: Request):
    """Get WorkflowAnalyticsService instance."""
    return request.app.state.analytics_service
