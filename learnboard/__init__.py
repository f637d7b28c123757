"""Core (UI-agnostic) learner dashboard logic.

This package contains:
- credential encoding and sign-in (token exchange)
- the GraphQL query catalog and the concurrent fetcher
- aggregation of raw records (totals, ratios, running series, per-project grouping)
- view configuration -> JSON-serializable payloads
- chart helpers (Altair -> Vega-Lite spec dict)
"""
