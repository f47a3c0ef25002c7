"""
Exception types raised by the coverage and pass estimation engine.

Per-item failures (one rule, one satellite, one collection) are caught at
the item boundary and turned into leveled rows; only ConfigError is meant
to stop a run.
"""


class CoverageEngineError(Exception):
    """Base class for engine errors."""


class FetchError(CoverageEngineError):
    """Network or HTTP failure while fetching TLE text or catalog results."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Fetch failed for {url}: {reason}")


class ElementParseError(CoverageEngineError, ValueError):
    """Element lines rejected by the propagator."""


class NameMatchError(CoverageEngineError, LookupError):
    """Configured satellite name not present in the fetched element sets."""


class ConfigError(CoverageEngineError):
    """Missing or malformed rule / satellite configuration."""
