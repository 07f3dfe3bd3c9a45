"""Report test runs to ReportPortal."""
