'''
Tier Engine Test Suite

Test Modules:
-------------
- test_tier_rank.py: Rank table defaults, spelling variants, unknown tiers
- test_transition.py: Movement decision order and population classification
- test_transition_matrix.py: Matrix totals, summary cards, top movers, key flows
- test_growth_insights.py: pct_change, match status, tier aggregation, alerts
- test_periods.py: Period parsing and validation
- test_snapshot_source.py: Period aggregation, pairing, Postgres snapshot source
- test_assignment_guard.py: In-flight guard, save / clear / bulk save
- test_repositories.py: Postgres assignment repository and handler registry
- test_api.py: HTTP routes and error status mapping

Running Tests:
--------------
    pip install -e ".[test]"
    pytest tier_engine/tests -v
'''

__all__ = []
