"""
Exceptions raised by the analytics core and its collaborators.
"""


class AnalyticError(Exception):
    """Base class for analytics errors"""


class MetricQueryError(AnalyticError):
    """The metric backend failed to answer a query"""


class ConfigError(AnalyticError, ValueError):
    """An analytic unit configuration or patch is malformed or misapplied"""


class UnitNotImplementedError(AnalyticError, NotImplementedError):
    """The analytic unit strategy has no detection algorithm yet"""

    def __init__(self, kind: str, operation: str):
        self.kind = kind
        self.operation = operation
        super().__init__(f"{kind} analytic unit does not implement {operation}()")
