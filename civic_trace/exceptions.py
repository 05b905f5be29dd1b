"""
Custom exceptions for the civic trace fetcher
"""

from typing import Optional


class CivicTraceError(Exception):
    """Base exception for civic trace"""
    pass


class ConfigurationError(CivicTraceError):
    """Configuration related errors"""
    pass


class ValidationError(CivicTraceError):
    """Invalid caller input"""
    pass


class AnnotationError(ValidationError):
    """Boost/exclude annotation document could not be parsed"""
    pass


class ParseError(CivicTraceError):
    """A source returned data we could not interpret"""
    pass


class APIError(CivicTraceError):
    """API related errors"""
    def __init__(self, message: str, provider: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class RateLimitError(APIError):
    """Rate limit exceeded"""
    pass
