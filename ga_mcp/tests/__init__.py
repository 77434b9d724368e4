'''
GA4 Reporting Tool Server Test Suite

Test Modules:
-------------
- test_query_normalizer.py: Metric coercion, request bodies, response pivot
- test_period_resolver.py: Previous-period and previous-year derivation
- test_comparison.py: Period merge, deltas, percent-change zero guard
- test_anomaly.py: Trailing-window spike/drop detection
- test_funnel.py: Funnel step compilation and flattening
- test_registry.py: Tool catalog and argument validation
- test_gateway.py: Both call shapes, error codes, JSON-RPC methods
- test_reports.py: Report tool handlers against a mocked client
- test_analytics_client.py: Data API facade with real request/response messages
- test_config.py: Environment settings and aliases
- test_api.py: HTTP transport, fail-closed authentication, health

Running Tests:
--------------
    pip install -e ".[test]"
    pytest -v
'''

__all__ = []
