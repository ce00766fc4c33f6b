"""
Receiver error taxonomy.

None of these errors is fatal to the receiver process.
"""


class ReceiverError(Exception):
    """Base class for receiver errors."""


class FetchError(ReceiverError):
    """Fetching campaign rules failed (network, auth or malformed response)."""


class NotifyError(ReceiverError):
    """Displaying a local notification failed."""


class ReportError(ReceiverError):
    """Reporting telemetry or analytics to the API failed."""
