"""
Insight Generators Package
==========================
Every generator maps an InsightGeneratorContext to a list of SmartInsight.

Modules:
  generators          - quality, trends, goals, habit summary, achievements, info, coverage
  advanced_generators - correlations, anomalies, predictions, social, trainer, temporal
  habit_generators    - habit patterns, risks, optimisation, achievements, AI recommendations
  recommendations     - habit recommendation engine
"""
