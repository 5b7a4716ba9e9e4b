'''
Model Quality Monitor Test Suite

Test Modules:
-------------
- test_calibration.py: Bucketing, reliability curve, ECE, Brier score,
  prediction-mass histogram and calibration alerts
- test_segment_drift.py: Segment grouping, heatmap, worst segments and the
  200-sample alert gate
- test_feature_drift.py: Dual-key feature extraction, window split, PSI,
  z-drift and drift alerts
- test_ranking.py: Rank-based AUC, top-K hit rates, lift chart, AUC alert
- test_narrative.py: Failure and category rates, daily series, alerts
- test_data_access.py: asyncpg loaders against a mocked pool
- test_dashboard.py: Full/filtered dashboards, drill-down, summary cards
- test_api.py: HTTP surface, parameter validation and error mapping
- test_core.py: Settings loading and the asyncpg pool lifecycle

Running Tests:
--------------
    pip install -e ".[test]"
    pytest model_quality/tests -v

Configuration:
--------------
See conftest.py for shared fixtures and test configuration.
'''

__all__ = []
