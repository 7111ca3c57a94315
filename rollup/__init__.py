"""
Issue Rollup - Hierarchy Metric Aggregation

Computes one colour-coded metric per parent issue from its descendants and keeps it
fresh as descendants change.

Package Structure:
    - core: Infrastructure (logging)
    - domain: Domain models (Record, FormulaContext, MetricResult, FieldConfig)
    - formulas: Expression evaluator and aggregation engine
    - collectors: Hierarchy traversal and Jira REST adapters
    - storage: Key-value stores for metrics, locks and field config
    - security: JQL input validation
"""

__version__ = "1.0.0"
__author__ = "Engineering Metrics Team"
