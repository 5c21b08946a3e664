class ServiceError(Exception):
    """An expected failure surfaced to API clients as an error envelope."""

    code = "SERVICE_ERROR"
    status = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class AggregationError(ServiceError):
    code = "AGGREGATION_FAILED"
    status = 500


class EmptyReportError(ServiceError):
    code = "REPORT_EMPTY"
    status = 404


class ReportGenerationError(ServiceError):
    code = "REPORT_FAILED"
    status = 500
