import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ConfigurationError

ENV_PREFIX = "MONGODB_LENS_"


class LensSettings(BaseModel):
    """Tunables for schema inference and query-pattern analysis."""
    model_config = ConfigDict(frozen=True)

    sample_size: int = Field(100, gt=0, description="Default number of documents sampled per inference call.")
    max_depth: int = Field(20, gt=0, description="Maximum nesting depth the field-path walker descends into.")
    array_sample_size: int = Field(1, gt=0, description="Number of leading object elements inspected per array of objects.")
    slow_query_ms: int = Field(100, ge=0, description="Queries slower than this (ms) without a covering index are recommended for indexing.")
    max_recommendations: int = Field(5, gt=0, description="Maximum number of observed query patterns reported.")
    large_array_threshold: int = Field(50, gt=0, description="Arrays longer than this are reported as a schema risk.")
    max_observation_seconds: int = Field(60, gt=0, description="Upper bound on the profiler observation window.")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LensSettings":
        """Build settings from MONGODB_LENS_* environment variables, falling back to defaults."""
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is None or raw.strip() == "":
                continue
            try:
                values[name] = int(raw)
            except ValueError as e:
                raise ConfigurationError(f"{ENV_PREFIX}{name.upper()} must be an integer, got '{raw}'.") from e
        try:
            return cls(**values)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid MongoDB Lens settings: {e}") from e
