import os
from typing import Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

BrowserName = Literal["chrome", "safari", "arc"]

DEFAULT_APPLICATION_NAMES = {
    "chrome": "Google Chrome",
    "safari": "Safari",
    "arc": "Arc",
}

ENV_PREFIX = "TABSCRIBE_"


def parse_exclude_hosts(value: str) -> Tuple[str, ...]:
    """Split a comma separated host list, dropping blanks."""
    return tuple(host.strip().lower() for host in value.split(",") if host.strip())


class Options(BaseModel):
    """Runtime configuration, created once at startup and never mutated."""

    model_config = ConfigDict(frozen=True)

    browser: BrowserName = "chrome"
    application_name: str = ""
    exclude_hosts: Tuple[str, ...] = ()
    # milliseconds; 0 disables change detection
    check_interval: int = Field(default=3000, ge=0)
    max_content_chars: int = Field(default=20000, gt=0)
    # milliseconds
    extraction_timeout: int = Field(default=20000, gt=0)

    @field_validator("exclude_hosts", mode="before")
    @classmethod
    def _normalize_hosts(cls, value):
        if isinstance(value, str):
            return parse_exclude_hosts(value)
        return tuple(str(host).strip().lower() for host in value if str(host).strip())

    @model_validator(mode="after")
    def _default_application_name(self) -> "Options":
        if not self.application_name:
            # frozen model: bypass __setattr__ once during validation
            object.__setattr__(self, "application_name", DEFAULT_APPLICATION_NAMES[self.browser])
        return self

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "Options":
        """Build options from ``TABSCRIBE_*`` environment variables.

        Explicit keyword overrides win over the environment.
        """
        env = os.environ if environ is None else environ
        values = {}
        for field_name in cls.model_fields:
            raw = env.get(ENV_PREFIX + field_name.upper())
            if raw is not None and raw.strip() != "":
                values[field_name] = raw.strip()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
