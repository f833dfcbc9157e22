"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pathlib import Path
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_ENGINE_URL = "http://127.0.0.1:6880"


class AppConfig(BaseModel):
    """A validated configuration model for the application."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    # Engine
    engine_url: str = DEFAULT_ENGINE_URL

    # Download Settings
    output_dir: str = ""
    label_length: int = 12

    # Logging
    snapshot_dump_interval: int = 10
    log_max_files: int = 3
    log_max_bytes: int = 10 * 1024 * 1024
    json_log: bool = False

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    @field_validator("engine_url")
    @classmethod
    def validate_engine_url(cls, v: str) -> str:
        """Ensures the engine URL is an absolute http(s) URL without a trailing slash."""
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(
                f"Engine URL must be an absolute http(s) URL, but got: {v!r}"
            )
        return v.rstrip("/")

    @field_validator("label_length")
    @classmethod
    def validate_label_length(cls, v: int) -> int:
        if v < 4 or v > 64:
            raise ValueError("Label length must be between 4 and 64.")
        return v

    @field_validator("snapshot_dump_interval", "log_max_files")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Value must be at least 1.")
        return v

    @field_validator("log_max_bytes")
    @classmethod
    def validate_log_size(cls, v: int) -> int:
        if v < 1024:
            raise ValueError("Log files must be allowed at least 1024 bytes.")
        return v

    @model_validator(mode="after")
    def validate_output_dir(self) -> "AppConfig":
        """Rejects an output directory that points at an existing regular file."""
        if self.output_dir and Path(self.output_dir).expanduser().is_file():
            raise ValueError(
                f"Output directory '{self.output_dir}' is a file, not a directory."
            )
        return self

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
