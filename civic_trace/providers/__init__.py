"""Source adapters, one module per data source.

Every adapter exposes ``async search(...) -> List[SearchResult]`` and turns
its own failures into an empty list.
"""

from . import browser, courtlistener, fec, google_cse, local_db, scrape, usaspending

__all__ = ["browser", "courtlistener", "fec", "google_cse", "local_db", "scrape", "usaspending"]
