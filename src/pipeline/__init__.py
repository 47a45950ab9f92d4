"""
Pipeline Package
================
  insight_pipeline - generator registry, dedup, personalisation, ranking
  preferences      - JSON load/save of InsightPreferences (outside the pure core)
"""
