"""
FastAPI router for tier growth insights and analytics alerts.

Key Endpoints:
- GET /tier-insights - Customer growth vs deposit growth per tier
- GET /tier-insights/alerts - Customer drop, downgrade and DA/U alerts

Both endpoints take the same period and line query parameters as
/tier-movement.
"""

import logging

from fastapi import APIRouter, HTTPException

from tier_engine.api.tier_movement import ComparisonDep, period_payload
from tier_engine.core.dependencies import RankTableDep, SettingsDep
from tier_engine.models.enums import MovementType
from tier_engine.services.growth_insights import (
    aggregate_tier_metrics,
    build_tier_alerts,
    compute_insights,
)
from tier_engine.services.transition import classify_population
from tier_engine.services.transition_matrix import build_summary_cards, key_flows


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tier-insights", tags=["tier-insights"])


@router.get("", response_model=dict)
async def get_tier_insights(
    comparison: ComparisonDep,
    settings: SettingsDep,
    rank_table: RankTableDep,
) -> dict:
    """
    Growth mismatch insight for every tier present in either period.

    Returns:
        { success: true, data: [TierInsight], periodA, periodB }
    """
    try:
        metrics_a = aggregate_tier_metrics(comparison.records, "A")
        metrics_b = aggregate_tier_metrics(comparison.records, "B")
        insights = compute_insights(
            metrics_a,
            metrics_b,
            tolerance=settings.match_tolerance_pct,
            rank_table=rank_table,
        )
        return {
            "success": True,
            "data": [insight.model_dump(mode="json") for insight in insights],
            "periodA": period_payload(comparison.period_a),
            "periodB": period_payload(comparison.period_b),
        }
    except Exception as e:
        logger.error(f"Error computing tier insights: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to compute tier insights")


@router.get("/alerts", response_model=dict)
async def get_tier_alerts(
    comparison: ComparisonDep,
    settings: SettingsDep,
    rank_table: RankTableDep,
) -> dict:
    """
    Period-over-period tier analytics alerts.

    Returns:
        { success: true, data: [TierAlert] }
    """
    try:
        transitions = classify_population(
            comparison.records,
            max_workers=settings.classification_workers,
        )
        alerts = build_tier_alerts(
            aggregate_tier_metrics(comparison.records, "A"),
            aggregate_tier_metrics(comparison.records, "B"),
            summary=build_summary_cards(transitions),
            flows=key_flows(transitions, limit=2, movement=MovementType.DOWNGRADE),
            customer_drop_warning_pct=settings.customer_drop_warning_pct,
            customer_drop_error_pct=settings.customer_drop_error_pct,
            downgrade_error_count=settings.downgrade_error_count,
            deposit_per_user_warning_pct=settings.deposit_per_user_warning_pct,
            deposit_per_user_error_pct=settings.deposit_per_user_error_pct,
            rank_table=rank_table,
        )
        return {
            "success": True,
            "data": [alert.model_dump(mode="json") for alert in alerts],
        }
    except Exception as e:
        logger.error(f"Error building tier alerts: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to build tier alerts")
