"""
FastAPI router for SNR handler setup.

Key Endpoints:
- GET /handler-setup - List SNR account to handler mappings
- POST /handler-setup - Create a mapping, or update it when "id" is given
- DELETE /handler-setup/{handler_id} - Remove a mapping
"""

import logging

from fastapi import APIRouter, HTTPException

from tier_engine.core.dependencies import CurrentUserDep, HandlerRegistryDep
from tier_engine.core.exceptions import NotFound, RepositoryError, ValidationError
from tier_engine.models.schemas import HandlerSetupRequest


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/handler-setup", tags=["handler-setup"])


@router.get("", response_model=dict)
async def list_handlers(registry: HandlerRegistryDep) -> dict:
    """All handler mappings ordered by line and SNR account."""
    try:
        entries = await registry.list_handlers()
    except RepositoryError as e:
        logger.error(f"Error listing handlers: {e.message}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch handler setup data")

    return {"success": True, "data": [entry.model_dump(mode="json") for entry in entries]}


@router.post("", response_model=dict)
async def save_handler(
    request: HandlerSetupRequest,
    registry: HandlerRegistryDep,
    current_user: CurrentUserDep,
) -> dict:
    """
    Create or update a handler mapping.

    Raises:
        HTTPException 400: Missing field or duplicate SNR account.
        HTTPException 404: Unknown id on update.
        HTTPException 500: Storage failure.
    """
    try:
        entry = await registry.save_handler(request, assigned_by=current_user)
    except ValidationError as e:
        logger.warning(f"POST /handler-setup rejected: {e.message}")
        raise HTTPException(status_code=400, detail=e.message)
    except NotFound as e:
        logger.warning(f"POST /handler-setup rejected: {e.message}")
        raise HTTPException(status_code=404, detail=e.message)
    except RepositoryError as e:
        logger.error(f"Error saving handler: {e.message}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save handler")

    message = "Handler updated successfully" if request.id else "Handler created successfully"
    return {"success": True, "message": message, "data": entry.model_dump(mode="json")}


@router.delete("/{handler_id}", response_model=dict)
async def delete_handler(handler_id: int, registry: HandlerRegistryDep) -> dict:
    """Delete a handler mapping."""
    try:
        await registry.delete_handler(handler_id)
    except NotFound as e:
        logger.warning(f"DELETE /handler-setup/{handler_id} rejected: {e.message}")
        raise HTTPException(status_code=404, detail=e.message)
    except RepositoryError as e:
        logger.error(f"Error deleting handler {handler_id}: {e.message}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete handler")

    return {"success": True, "message": "Handler deleted successfully"}
