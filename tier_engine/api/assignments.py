"""
FastAPI router for customer SNR-account assignments.

Key Endpoints:
- POST /assignments/save - Assign an SNR account (handler is derived)
- POST /assignments/clear - Remove a customer's assignment (idempotent)
- POST /assignments/bulk-save - Save many assignments, reported per item
- GET /assignments/handler - Handler configured for an SNR account

Status Codes:
- 400: missing/blank field (validation_error)
- 409: a mutation for the same customer is still in flight (concurrency_rejected)
- 500: storage failure (repository_error)

Bulk save always answers 200 once the request itself is valid; each item
carries its own success flag and error, and the body reports successCount and
errorCount.

The caller identity recorded as assignedBy is read from the x-user header.
"""

import logging
from typing import Dict, Optional

from fastapi import APIRouter, HTTPException, Query

from tier_engine.core.dependencies import (
    AssignmentGuardDep,
    CurrentUserDep,
    HandlerRegistryDep,
)
from tier_engine.core.exceptions import (
    ConcurrencyRejected,
    NotFound,
    RepositoryError,
    ValidationError,
)
from tier_engine.models.schemas import (
    AssignmentRequest,
    AssignmentResult,
    BulkAssignmentRequest,
    ClearAssignmentRequest,
)


# =============================================================================
# Module Configuration
# =============================================================================

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assignments", tags=["assignments"])

ERROR_STATUS: Dict[str, int] = {
    error.code: error.status_code
    for error in (ValidationError, NotFound, ConcurrencyRejected, RepositoryError)
}


def _raise_for_result(result: AssignmentResult) -> None:
    """Turn a failed single-item result into an HTTPException."""
    if result.success:
        return
    error = result.error
    status_code = ERROR_STATUS.get(error.code, 500) if error else 500
    raise HTTPException(
        status_code=status_code,
        detail=error.model_dump() if error else "Assignment failed",
    )


# =============================================================================
# POST /assignments/save
# =============================================================================


@router.post("/save", response_model=dict)
async def save_assignment(
    request: AssignmentRequest,
    guard: AssignmentGuardDep,
    current_user: CurrentUserDep,
) -> dict:
    """
    Assign an SNR account to a customer.

    Returns:
        { success: true, message, handler }. handler is "" when the SNR
        account has no handler configured yet.

    Example Request:
        POST /assignments/save
        x-user: {"username": "alice"}
        {"customerKey": "USC-000123", "line": "BRAND-A", "snrAccount": "snr_01"}
    """
    result = await guard.save_assignment(
        request.customerKey,
        request.line,
        request.snrAccount,
        assigned_by=current_user,
    )
    _raise_for_result(result)
    return {
        "success": True,
        "message": "Assignment saved successfully",
        "handler": result.handler,
    }


# =============================================================================
# POST /assignments/clear
# =============================================================================


@router.post("/clear", response_model=dict)
async def clear_assignment(
    request: ClearAssignmentRequest,
    guard: AssignmentGuardDep,
) -> dict:
    """
    Clear a customer's assignment.

    Clearing a customer without an assignment succeeds without writing.
    """
    result = await guard.clear_assignment(request.customerKey)
    _raise_for_result(result)
    return {"success": True, "message": "Assignment cleared successfully"}


# =============================================================================
# POST /assignments/bulk-save
# =============================================================================


@router.post("/bulk-save", response_model=dict)
async def bulk_save_assignments(
    request: BulkAssignmentRequest,
    guard: AssignmentGuardDep,
    current_user: CurrentUserDep,
) -> dict:
    """
    Save a batch of assignments.

    One item's failure never aborts the others.

    Returns:
        { success, data: BulkAssignmentResult }; success is true only when
        every item succeeded.
    """
    if not request.assignments:
        logger.warning("POST /assignments/bulk-save rejected: empty assignments")
        raise HTTPException(status_code=400, detail="Invalid assignments data")

    bulk = await guard.bulk_save_assignments(request.assignments, assigned_by=current_user)
    return {
        "success": bulk.errorCount == 0,
        "data": bulk.model_dump(mode="json"),
    }


# =============================================================================
# GET /assignments/handler
# =============================================================================


@router.get("/handler", response_model=dict)
async def get_handler(
    registry: HandlerRegistryDep,
    snr_account: Optional[str] = Query(None, alias="snrAccount", description="SNR account"),
) -> dict:
    """
    Handler configured for an SNR account.

    Returns:
        { success: true, handler } with handler "" when none is configured.
    """
    if not snr_account or not snr_account.strip():
        logger.warning("GET /assignments/handler rejected: missing snrAccount")
        raise HTTPException(status_code=400, detail="snrAccount is required")

    try:
        handler = await registry.lookup(snr_account)
    except RepositoryError as e:
        logger.error(f"Error fetching handler for {snr_account}: {e.message}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch handler")

    return {"success": True, "handler": handler}
