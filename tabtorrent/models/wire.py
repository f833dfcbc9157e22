"""
Pydantic models for the JSON messages pushed by the download engine.

Every field is lenient: a value of the wrong type is replaced by `None` during
validation instead of failing, so a partially broken message still yields
whatever fields it carries.
"""

import math
from collections.abc import Mapping
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


def _counter(value: Any) -> int | None:
    """Accepts non-negative integral counters; anything else is unknown."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float) and math.isfinite(value) and value >= 0:
        return int(value)
    return None


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


Counter = Annotated[int | None, BeforeValidator(_counter)]
Text = Annotated[str | None, BeforeValidator(_text)]


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class WireBytes(_WireModel):
    downloaded: Counter = None
    total: Counter = None


class WireDownload(_WireModel):
    bytes_received: Counter = None


class WireUpload(_WireModel):
    bytes_sent: Counter = None


class WirePeer(_WireModel):
    origin: Text = None
    client: Text = None
    download: WireDownload | None = None
    upload: WireUpload | None = None

    @field_validator("download", "upload", mode="before")
    @classmethod
    def drop_non_mappings(cls, v: Any) -> Any:
        return v if isinstance(v, Mapping) else None


class WireSnapshot(_WireModel):
    """The `{bytes, peers}` message emitted once per engine tick."""

    byte_counts: WireBytes | None = Field(default=None, alias="bytes")
    peers: dict[str, WirePeer] = Field(default_factory=dict)

    @field_validator("byte_counts", mode="before")
    @classmethod
    def drop_invalid_bytes(cls, v: Any) -> Any:
        return v if isinstance(v, Mapping) else None

    @field_validator("peers", mode="before")
    @classmethod
    def coerce_peers(cls, v: Any) -> dict[str, Any]:
        """Keeps every address; an entry that is not an object becomes an empty peer."""
        if not isinstance(v, Mapping):
            return {}
        return {
            str(address): (entry if isinstance(entry, Mapping) else {})
            for address, entry in v.items()
        }
