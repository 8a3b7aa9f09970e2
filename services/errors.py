"""
Domain errors. Each carries the HTTP status the API renders it with;
services raise these and never import FastAPI.
"""


class TrustLendError(Exception):
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotAuthenticated(TrustLendError):
    status_code = 401
    default_message = "Not authenticated"


class NotFound(TrustLendError):
    status_code = 404
    default_message = "Not found"


class AlreadyProcessed(TrustLendError):
    status_code = 409
    default_message = "Assessment already processed"


class Conflict(TrustLendError):
    status_code = 409
    default_message = "Conflict"


class InvalidRequest(TrustLendError):
    status_code = 400
    default_message = "Invalid request"


class InsufficientCredits(TrustLendError):
    status_code = 402
    default_message = "Insufficient credits"


class AssessmentsDisallowed(TrustLendError):
    status_code = 403
    default_message = "Borrower does not allow assessments"


class UpstreamAnalysisFailure(TrustLendError):
    status_code = 502
    default_message = "Upstream service failed"


class UpstreamParseFailure(TrustLendError):
    status_code = 502
    default_message = "Upstream response could not be parsed"


class UpstreamNotConfigured(TrustLendError):
    status_code = 503
    default_message = "Upstream service not configured"
