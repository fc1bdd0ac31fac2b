"""
Clinic Metrics Test Suite

Test Modules:
-------------
- test_metrics.py: coercion, zero-guarded ratios, trend calculator
- test_formatting.py: es-AR formatting and color classifiers
- test_aggregation.py: sum-then-ratio reducer, channels, heatmap, billing estimates
- test_funnel.py: funnel stages, conversions and losses
- test_risk.py: risk/priority/message classification, risk matrix, priorities
- test_aging.py: debt aging buckets
- test_concentration.py: Pareto ranking
- test_contact_scripts.py: contact messages, WhatsApp links, debtor export
- test_kpis.py: debt composition and KPI summaries
- test_evolution.py: monthly evolution series
- test_view_cache.py: ViewCache TTL and invalidation
- test_dashboard_data.py: SQL builders and cached view reads
- test_view_refresh.py: materialized view refresh
- test_api.py: HTTP endpoints with mocked views
"""
