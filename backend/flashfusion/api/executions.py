# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Execution API Routes
"""

from typing import Dict, Any
from fastapi import APIRouter, Depends, HTTPException

from flashfusion.core.dependencies import get_workflow_service
from flashfusion.core.errors import NotFoundError, ValidationError
from flashfusion.services.workflow_service import WorkflowExecutionService

router = APIRouter(prefix="/executions", tags=["executions"])


@router.get("/{execution_id}")
async def get_execution(
    execution_id: str,
    service: WorkflowExecutionService = Depends(get_workflow_service)
) -> Dict[str, Any]:
    """Get an execution record with its node log"""
    try:
        return await service.get_execution(execution_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
