"""
Exception hierarchy for the SEO Blog Checker.

Per-article errors (content source, evaluation, report) are recovered by the
batch processor. ConfigError is fatal to the whole run.
"""

from typing import Iterable, Optional


class SEOCheckerError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(SEOCheckerError):
    """Missing or malformed settings / configuration file."""


# --- Content source (WordPress REST API, page scraper) ---

class ContentSourceError(SEOCheckerError):
    def __init__(self, message: str, identifier: Optional[str] = None, during_probe: bool = False):
        super().__init__(message)
        self.identifier = identifier
        self.during_probe = during_probe


class NotFoundError(ContentSourceError):
    """The CMS reports no article for the identifier."""


class GatewayError(ContentSourceError):
    """Upstream answered with a 5xx status."""


class ConnectivityError(ContentSourceError):
    """DNS, connection or timeout failure."""


class ApiError(ContentSourceError):
    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code


# --- Evaluation (Gemini) ---

class EvaluationError(SEOCheckerError):
    """Evaluation failed; the root cause is chained as __cause__."""


class RateLimitError(EvaluationError):
    """HTTP 429. Retry later; never retried automatically."""


class BadRequestError(EvaluationError):
    """HTTP 400, carries the upstream error message."""


class ModelNotFoundError(EvaluationError):
    """HTTP 404: wrong endpoint or model name."""


class EvaluationConnectivityError(EvaluationError):
    """Network unreachable while calling the generative API."""


class EvaluationTransportError(EvaluationError):
    """Any other transport level failure (5xx, empty candidates...)."""


class ParseError(EvaluationError):
    def __init__(self, message: str, position: Optional[int] = None, context: str = ""):
        super().__init__(message)
        self.position = position
        self.context = context


class ValidationError(EvaluationError):
    def __init__(self, message: str, missing_fields: Iterable[str] = ()):
        super().__init__(message)
        self.missing_fields = list(missing_fields)


class ReportError(SEOCheckerError):
    """Report rendering or persistence failed."""
