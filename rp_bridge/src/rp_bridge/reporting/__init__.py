from .fakes import FakeReportingClient, ReportingCall
from .reportportal_client import ReportPortalReportingClient

__all__ = [
    "FakeReportingClient",
    "ReportingCall",
    "ReportPortalReportingClient",
]
