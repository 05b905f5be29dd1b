"""
Civic Trace - tiered data fetching for child-welfare system research
"""

__version__ = "1.0.0"
__author__ = "Civic Trace Ops Team"

__all__ = [
    "DataFetcher",
    "FetcherConfig",
    "FetchResult",
    "SearchResult",
    "CoverageRequirement",
    "Settings",
    "calculate_coverage",
    "__version__",
    "__author__",
]

def __getattr__(name: str):
    """Lazy import to avoid import-time side effects."""
    if name == "DataFetcher":
        from .fetcher import DataFetcher
        return DataFetcher
    elif name == "FetcherConfig":
        from .config import FetcherConfig
        return FetcherConfig
    elif name in ("FetchResult", "SearchResult", "CoverageRequirement"):
        from . import models
        return getattr(models, name)
    elif name == "Settings":
        from .config import Settings
        return Settings
    elif name == "calculate_coverage":
        from .coverage import calculate_coverage
        return calculate_coverage
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
