"""Source tracking for resolved configuration values."""

from .types import ConfigOrigin, SourceMap


class SourceTracker:
    """Builds a `SourceMap` as configuration is resolved source by source."""

    def __init__(self) -> None:
        self._origins: dict[str, ConfigOrigin] = {}

    def set_origin(self, field: str, origin: ConfigOrigin) -> None:
        self._origins[field] = origin

    def get_source_map(self) -> SourceMap:
        """Return a copy of the recorded origins."""
        return dict(self._origins)

