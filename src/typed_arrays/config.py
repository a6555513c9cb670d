"""Runtime settings for the timeline, REPL and language server."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping

# camelCase spellings accepted from LSP initializationOptions
_CAMEL_NAMES = {
    "debounceDelay": "debounce_delay",
    "autoplayInterval": "autoplay_interval",
    "coalesceWindow": "coalesce_window",
}


@dataclass
class Settings:
    """Timing settings, all in seconds."""

    debounce_delay: float = 0.5  # quiet period before a diagnostics pass
    autoplay_interval: float = 1.0  # one statement per tick while playing
    coalesce_window: float = 2.0  # identical diagnostics suppressed within this span

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"Setting '{f.name}' must be a number, got {value!r}")
            if value <= 0:
                raise ValueError(f"Setting '{f.name}' must be positive, got {value}")
            setattr(self, f.name, float(value))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> Settings:
        """Build settings from a mapping, ignoring unknown keys."""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _CAMEL_NAMES.get(key, key)
            if name in known and value is not None:
                kwargs[name] = value
        return cls(**kwargs)
