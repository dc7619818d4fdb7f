'''
Engagement Analytics Test Suite

Test Modules:
-------------
- test_statistics.py: Pearson correlation, t-statistics, strength bands, tipping points
- test_ingestion.py: Numeric cleaning and feature row / exposure pair loading
- test_driver_analysis.py: Allow-lists, driver ranking, table replacement
- test_pattern_mining.py: Newton-Raphson logistic fits, combination enumeration,
  AIC ranking, batched persistence
- test_persona.py: Persona decision tree and population summary
- test_api.py: Route error mapping and application wiring

Running Tests:
--------------
    pip install -e ".[test]"
    pytest engagement_analytics/tests -v

See conftest.py for shared fixtures.
'''

__all__ = []
