"""
Analytics Package
=================
Pure numerical helpers shared by the insight generators.

Modules:
  statistics        - correlation, z-score anomalies, OLS trend/forecast, temporal patterns
  habit_analyzer    - completion patterns, chains, consistency, momentum, risk
  habit_correlation - conditional dependencies, synergies, trigger habits
  habit_quality     - composite quality score, grade and recommendation
"""
