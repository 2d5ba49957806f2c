"""
Failure taxonomy for the order pipeline.

Business-rule violations are not exceptions: the validator returns them
as a list. The classes here cover the request envelope and the external
collaborators.
"""


class OrderProcessingError(Exception):
    """Base class for every pipeline failure."""


class ValidationError(OrderProcessingError):
    """The request itself could not be turned into an order."""

    def __init__(self, message, violations=None):
        super().__init__(message)
        self.violations = list(violations or [message])


class AnalysisFailure(OrderProcessingError):
    """AI call failed or its response could not be parsed. Fatal."""


class StoreFailure(OrderProcessingError):
    """Order outcome could not be written to the structured store. Fatal."""


class ArchiveFailure(OrderProcessingError):
    """Blob archive write failed. Best-effort."""


class NotifyFailure(OrderProcessingError):
    """Notification could not be published. Best-effort."""


class MetricsFailure(OrderProcessingError):
    """Metrics could not be recorded. Best-effort."""
