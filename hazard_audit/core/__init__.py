"""
Core components of the Hazard Analysis audit.

Contains:
- Data models (Issue, AuditDetails, StepOutcome)
- Result aggregation
- Base class for checks
"""
