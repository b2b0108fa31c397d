"""
Growth Insight Engine Test Module

Tests for:
- pct_change with zero bases
- Match / Churn Risk / Value Up labelling and insight texts
- Per-tier aggregation from paired customer records
- Tier analytics alerts (customer drops, downgrades, DA per user)
"""

import pytest

from tier_engine.models.enums import AlertPriority, AlertType, MatchStatus, MovementType
from tier_engine.models.schemas import TierMetrics
from tier_engine.services.growth_insights import (
    aggregate_tier_metrics,
    build_tier_alerts,
    classify_match,
    compute_insights,
    describe_insight,
    pct_change,
)
from tier_engine.services.transition import classify_population
from tier_engine.services.transition_matrix import build_summary_cards, key_flows


def metrics(tier_name: str, customers: int, deposit: float) -> TierMetrics:
    return TierMetrics(tierName=tier_name, customerCount=customers, depositAmount=deposit)


# =============================================================================
# Test Class: TestPctChange
# =============================================================================

class TestPctChange:
    """Percentage change including the zero-base cases."""

    @pytest.mark.parametrize("base,target,expected", [
        (100, 150, 50.0),
        (200, 100, -50.0),
        (50, 50, 0.0),
        (0, 0, 0.0),
        (0, 5, 100.0),
        (0, -3, 0.0),
    ])
    def test_pct_change(self, base, target, expected):
        assert pct_change(base, target) == pytest.approx(expected)


# =============================================================================
# Test Class: TestClassifyMatch
# =============================================================================

class TestClassifyMatch:
    """Status labels and the tolerance boundary."""

    def test_within_tolerance_is_match(self):
        assert classify_match(10.0, 12.0) == MatchStatus.MATCH

    def test_delta_equal_to_tolerance_is_match(self):
        assert classify_match(10.0, 15.0) == MatchStatus.MATCH

    def test_customers_ahead_of_deposits_is_churn_risk(self):
        assert classify_match(20.0, 5.0) == MatchStatus.CHURN_RISK

    def test_deposits_ahead_of_customers_is_value_up(self):
        assert classify_match(5.0, 20.0) == MatchStatus.VALUE_UP

    def test_custom_tolerance(self):
        assert classify_match(0.0, 8.0, tolerance=10.0) == MatchStatus.MATCH
        assert classify_match(0.0, 8.0, tolerance=2.0) == MatchStatus.VALUE_UP


# =============================================================================
# Test Class: TestDescribeInsight
# =============================================================================

class TestDescribeInsight:
    """Insight sentences."""

    def test_match_text(self):
        text = describe_insight("Tier 1", MatchStatus.MATCH, 3.0, 4.0)
        assert text == (
            "Customer growth and DA growth are aligned (within 5% difference). "
            "Tier Tier 1 shows balanced movement."
        )

    def test_value_up_text(self):
        text = describe_insight("P1", MatchStatus.VALUE_UP, 10.0, 20.0)
        assert text.startswith("DA growth (+20.0%) exceeds customer growth (+10.0%).")

    def test_churn_risk_text_with_negative_deposit_growth(self):
        text = describe_insight("P1", MatchStatus.CHURN_RISK, 12.5, -4.0)
        assert text.startswith("Customer growth (+12.5%) exceeds DA growth (-4.0%).")
        assert "churn risk" in text


# =============================================================================
# Test Class: TestAggregateTierMetrics
# =============================================================================

class TestAggregateTierMetrics:
    """Per-tier totals of one period."""

    @pytest.fixture
    def records(self, make_record):
        return [
            make_record("K1", "Tier 1", "Tier 1", deposit_a=100.0, deposit_b=150.0),
            make_record("K2", "Tier 1", None, deposit_a=50.0),
            make_record("K3", None, "Tier 1", deposit_b=30.0),
            make_record("K4", "Regular", "Tier 2", deposit_a=20.0, deposit_b=40.0),
        ]

    def test_period_a(self, records):
        result = aggregate_tier_metrics(records, "A")

        assert set(result) == {"Tier 1", "Regular"}
        assert result["Tier 1"].customerCount == 2
        assert result["Tier 1"].depositAmount == pytest.approx(150.0)
        assert result["Tier 1"].ggr == pytest.approx(150.0)

    def test_period_b(self, records):
        result = aggregate_tier_metrics(records, "B")

        assert result["Tier 1"].customerCount == 2
        assert result["Tier 1"].depositAmount == pytest.approx(180.0)
        assert result["Tier 2"].customerCount == 1

    def test_inactive_customer_not_counted(self, make_record):
        records = [
            make_record("K1", "P1", "P1", cases_a=0, deposit_a=10.0),
            make_record("K2", "P1", "P1", deposit_a=5.0),
        ]
        result = aggregate_tier_metrics(records, "A")

        assert result["P1"].customerCount == 1
        assert result["P1"].depositAmount == pytest.approx(15.0)

    def test_empty_population(self):
        assert aggregate_tier_metrics([], "A") == {}

    def test_invalid_period(self, records):
        with pytest.raises(ValueError):
            aggregate_tier_metrics(records, "C")


# =============================================================================
# Test Class: TestComputeInsights
# =============================================================================

class TestComputeInsights:
    """Insights across both periods."""

    def test_value_up_tier(self):
        insights = compute_insights(
            {"Tier 1": metrics("Tier 1", 100, 1000.0)},
            {"Tier 1": metrics("Tier 1", 110, 1200.0)},
        )

        assert len(insights) == 1
        insight = insights[0]
        assert insight.customerCountChangePct == pytest.approx(10.0)
        assert insight.depositAmountChangePct == pytest.approx(20.0)
        assert insight.matchDelta == pytest.approx(10.0)
        assert insight.matchStatus == MatchStatus.VALUE_UP
        assert "DA growth (+20.0%)" in insight.insight

    def test_churn_risk_tier(self):
        insights = compute_insights(
            {"Regular": metrics("Regular", 100, 1000.0)},
            {"Regular": metrics("Regular", 130, 1000.0)},
        )
        assert insights[0].matchStatus == MatchStatus.CHURN_RISK

    def test_ordered_by_rank(self):
        a = {
            "Regular": metrics("Regular", 10, 100.0),
            "Gold": metrics("Gold", 10, 100.0),
            "Super VIP": metrics("Super VIP", 10, 100.0),
        }
        insights = compute_insights(a, a)
        assert [i.tierName for i in insights] == ["Super VIP", "Regular", "Gold"]

    def test_tier_missing_from_b_treated_as_zero(self):
        insights = compute_insights({"P2": metrics("P2", 20, 500.0)}, {})

        assert insights[0].customerCountChangePct == pytest.approx(-100.0)
        assert insights[0].depositAmountChangePct == pytest.approx(-100.0)
        assert insights[0].matchStatus == MatchStatus.MATCH

    def test_tier_new_in_b_grows_from_zero(self):
        insights = compute_insights({}, {"P2": metrics("P2", 20, 500.0)})

        assert insights[0].customerCountChangePct == pytest.approx(100.0)
        assert insights[0].matchStatus == MatchStatus.MATCH

    def test_no_tiers(self):
        assert compute_insights({}, {}) == []


# =============================================================================
# Test Class: TestBuildTierAlerts
# =============================================================================

class TestBuildTierAlerts:
    """Dashboard alerts."""

    def test_customer_drop_warning(self):
        alerts = build_tier_alerts(
            {"Tier 1": metrics("Tier 1", 100, 10000.0)},
            {"Tier 1": metrics("Tier 1", 92, 9200.0)},
        )

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.id == "customer-decrease-Tier 1"
        assert alert.title == "Tier 1 Tier - Customer Count"
        assert alert.type == AlertType.WARNING
        assert alert.priority == AlertPriority.MEDIUM
        assert alert.message == "Decreased by 8.0% (from 100 to 92). Total loss of 8 customers."

    def test_customer_drop_error(self):
        alerts = build_tier_alerts(
            {"Tier 1": metrics("Tier 1", 100, 10000.0)},
            {"Tier 1": metrics("Tier 1", 80, 8000.0)},
        )
        assert alerts[0].type == AlertType.ERROR
        assert alerts[0].priority == AlertPriority.HIGH

    def test_drop_at_threshold_not_reported(self):
        alerts = build_tier_alerts(
            {"Tier 1": metrics("Tier 1", 100, 10000.0)},
            {"Tier 1": metrics("Tier 1", 95, 9500.0)},
        )
        assert alerts == []

    def test_downgrade_alert_lists_key_flows(self, make_record):
        transitions = classify_population(
            [make_record(f"D{i}", "Tier 3", "Tier 2") for i in range(3)]
            + [make_record("D9", "Tier 1", "Regular"), make_record("U1", "Tier 2", "Tier 5")]
        )
        summary = build_summary_cards(transitions)
        flows = key_flows(transitions, limit=5, movement=MovementType.DOWNGRADE)

        alerts = build_tier_alerts({}, {}, summary=summary, flows=flows)

        assert [a.id for a in alerts] == ["tier-downgrades"]
        assert alerts[0].message == (
            "Total 4 customers downgraded across all tiers. "
            "Key flows: Tier 3→Tier 2 (3), Tier 1→Regular (1)."
        )
        assert alerts[0].type == AlertType.WARNING

    def test_downgrade_alert_error_above_threshold(self, make_record):
        transitions = classify_population(
            [make_record(f"D{i}", "Tier 3", "Tier 2") for i in range(4)]
        )
        alerts = build_tier_alerts(
            {}, {},
            summary=build_summary_cards(transitions),
            downgrade_error_count=3,
        )
        assert alerts[0].type == AlertType.ERROR
        assert alerts[0].message == "Total 4 customers downgraded across all tiers."

    def test_deposit_per_user_increase(self):
        alerts = build_tier_alerts(
            {"Tier 1": metrics("Tier 1", 10, 1000.0)},
            {"Tier 1": metrics("Tier 1", 10, 1100.0)},
        )

        assert [a.id for a in alerts] == ["da-per-user-trend"]
        assert alerts[0].title == "Overall DA/U Trend"
        assert alerts[0].message == (
            "Deposit Amount per User increased by 10.0% (from 100.00 to 110.00)."
        )
        assert alerts[0].type == AlertType.WARNING

    def test_deposit_per_user_sharp_decrease(self):
        alerts = build_tier_alerts(
            {"Tier 1": metrics("Tier 1", 10, 1000.0)},
            {"Tier 1": metrics("Tier 1", 10, 800.0)},
        )

        assert alerts[0].type == AlertType.ERROR
        assert "decreased by 20.0%" in alerts[0].message
        assert alerts[0].message.endswith("Requires attention to customer value retention.")

    def test_no_alerts_for_steady_periods(self):
        a = {"Tier 1": metrics("Tier 1", 10, 1000.0)}
        assert build_tier_alerts(a, a) == []
