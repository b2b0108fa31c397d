"""
FastAPI router for the tier movement view.

Key Endpoints:
- GET /tier-movement - Transition matrix, summary cards, top movers and key
  flows between Period A and Period B

Query Parameters (shared with /tier-insights):
- periodAStart, periodAEnd: Period A window, YYYY-MM-DD, inclusive
- periodBStart, periodBEnd: Period B window, YYYY-MM-DD, inclusive
- line: Brand line filter; omitted or "All" means every line

Response shape: { success: true, data: TierMovementReport, periodA, periodB }
"""

import logging
from typing import Annotated, List, NamedTuple, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from tier_engine.core.dependencies import SettingsDep, SnapshotSourceDep
from tier_engine.core.exceptions import RepositoryError, ValidationError
from tier_engine.models.schemas import CustomerPeriodRecord, DateRange
from tier_engine.services.periods import parse_comparison
from tier_engine.services.transition_matrix import classify


# =============================================================================
# Module Configuration
# =============================================================================

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tier-movement", tags=["tier-movement"])


# =============================================================================
# Shared Comparison Dependency
# =============================================================================


class Comparison(NamedTuple):
    """Validated periods and the paired customer records between them."""
    period_a: DateRange
    period_b: DateRange
    line: Optional[str]
    records: List[CustomerPeriodRecord]


def period_payload(period: DateRange) -> dict:
    return {"start": period.start.isoformat(), "end": period.end.isoformat()}


async def get_comparison(
    source: SnapshotSourceDep,
    period_a_start: Annotated[Optional[str], Query(alias="periodAStart", description="Period A start (YYYY-MM-DD)")] = None,
    period_a_end: Annotated[Optional[str], Query(alias="periodAEnd", description="Period A end (YYYY-MM-DD)")] = None,
    period_b_start: Annotated[Optional[str], Query(alias="periodBStart", description="Period B start (YYYY-MM-DD)")] = None,
    period_b_end: Annotated[Optional[str], Query(alias="periodBEnd", description="Period B end (YYYY-MM-DD)")] = None,
    line: Annotated[Optional[str], Query(description="Brand line filter, 'All' for every line")] = None,
) -> Comparison:
    """
    Validate the comparison periods and load both snapshots.

    Raises:
        HTTPException 400: If a period parameter is missing or invalid.
        HTTPException 500: If the warehouse query fails.
    """
    try:
        period_a, period_b = parse_comparison(period_a_start, period_a_end, period_b_start, period_b_end)
    except ValidationError as e:
        logger.warning(f"Comparison rejected: {e.message}")
        raise HTTPException(status_code=400, detail=e.message)

    try:
        records = await source.load_comparison(line, period_a, period_b)
    except RepositoryError as e:
        logger.error(f"Failed to load comparison snapshots: {e.message}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to load tier data")

    return Comparison(period_a=period_a, period_b=period_b, line=line, records=records)


ComparisonDep = Annotated[Comparison, Depends(get_comparison)]


# =============================================================================
# GET /tier-movement
# =============================================================================


@router.get("", response_model=dict)
async def get_tier_movement(
    comparison: ComparisonDep,
    settings: SettingsDep,
) -> dict:
    """
    Tier movement report between two periods.

    Returns:
        { success: true, data: TierMovementReport, periodA, periodB }

    Raises:
        HTTPException 400: Invalid periods.
        HTTPException 500: Warehouse or processing failure.

    Example Request:
        GET /tier-movement?periodAStart=2025-01-01&periodAEnd=2025-01-31
            &periodBStart=2025-02-01&periodBEnd=2025-02-28&line=All
    """
    try:
        report = classify(
            comparison.records,
            max_workers=settings.classification_workers,
            top_movers_limit=settings.top_movers_limit,
            key_flows_limit=settings.key_flows_limit,
        )
        return {
            "success": True,
            "data": report.model_dump(mode="json"),
            "periodA": period_payload(comparison.period_a),
            "periodB": period_payload(comparison.period_b),
        }
    except Exception as e:
        logger.error(f"Error building tier movement report: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="Failed to build tier movement report"
        )
