"""
Runtime configuration for the Inspector service.

Pydantic v2 settings management: values are parsed once from the
environment (prefix INSPECTOR_) or a .env file, validated strictly, and
treated as immutable for the lifetime of the process.

Configuration tunes collection (fetch timeouts, retries, channel waits)
and selects the rule set. It never alters how the evaluator interprets
a given set of snapshots.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


SERVICE_VERSION = "0.3.0"


class InspectorSettings(BaseSettings):
    """
    Application settings parsed from the environment.

    Fails fast at startup if a value is malformed.
    """

    # ---------------------------------------------------------------------
    # Rule set
    # ---------------------------------------------------------------------

    rules_path: Annotated[
        Optional[Path],
        Field(
            default=None,
            description=(
                "Path to a JSON rule file. The bundled default rules are "
                "used when unset."
            ),
        ),
    ]

    # ---------------------------------------------------------------------
    # ads.txt fetching
    # ---------------------------------------------------------------------

    ads_txt_scheme: Annotated[
        str,
        Field(
            default="https",
            description="URL scheme used to fetch <domain>/ads.txt",
        ),
    ]

    fetch_timeout_seconds: Annotated[
        float,
        Field(
            default=10.0,
            gt=0,
            description="Upper bound for a single ads.txt request",
        ),
    ]

    fetch_retry_attempts: Annotated[
        int,
        Field(
            default=3,
            ge=1,
            le=10,
            description="Attempts for transient transport failures",
        ),
    ]

    user_agent: Annotated[
        str,
        Field(
            default=f"adstack-inspector/{SERVICE_VERSION}",
            min_length=1,
            description="User-Agent header sent with ads.txt requests",
        ),
    ]

    # ---------------------------------------------------------------------
    # Bidding inspection channel
    # ---------------------------------------------------------------------

    bidding_response_timeout_seconds: Annotated[
        float,
        Field(
            default=2.0,
            gt=0,
            description="Maximum wait for an inspection channel response",
        ),
    ]

    bidding_settle_delay_seconds: Annotated[
        float,
        Field(
            default=0.1,
            ge=0,
            description=(
                "Delay before the in-memory channel inspects the runtime, "
                "allowing asynchronously loaded libraries to initialize"
            ),
        ),
    ]

    # ---------------------------------------------------------------------
    # Parsing
    # ---------------------------------------------------------------------

    strict_ads_txt_parsing: Annotated[
        bool,
        Field(
            default=False,
            description="Reject ads.txt files containing malformed lines",
        ),
    ]

    # ---------------------------------------------------------------------
    # Validators (Pydantic v2)
    # ---------------------------------------------------------------------

    @field_validator("ads_txt_scheme")
    @classmethod
    def validate_scheme(cls, v: str) -> str:
        allowed = {"http", "https"}
        scheme = v.strip().lower()
        if scheme not in allowed:
            raise ValueError(
                f"Unsupported ads_txt_scheme '{v}'. "
                f"Allowed values: {sorted(allowed)}"
            )
        return scheme

    @field_validator("rules_path")
    @classmethod
    def rules_file_must_exist(cls, v: Optional[Path]) -> Optional[Path]:
        if v is None:
            return v
        if not v.exists():
            raise ValueError(f"Configured rules_path does not exist: {v}")
        if not v.is_file():
            raise ValueError(f"Configured rules_path is not a file: {v}")
        return v

    model_config = SettingsConfigDict(
        env_prefix="INSPECTOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )


# -------------------------------------------------------------------------
# Settings Dependency Provider
# -------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_settings() -> InspectorSettings:
    """
    Dependency injection provider for application settings.

    Cached so the environment is parsed once per process.
    """
    return InspectorSettings()
