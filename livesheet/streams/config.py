"""Configuration for stream scheduling, rate limiting, and archiving.

No env prefix is used. ARCHIVE_ENABLED and ARCHIVE_THRESHOLD_MINUTES keep
their deployment names; the millisecond variables RATE_LIVE, RATE_OFF and
ARCHIVE_CHECK_INTERVAL are still read and converted when the matching
*_SECONDS field is not set.
"""

from datetime import timedelta

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchedulerConfig(BaseSettings):
    """Timing knobs for the polling loop and its components.

    Example:
        RATE_LIVE_SECONDS=60
        ARCHIVE_ENABLED=true
        MAX_KNOWN_CHECKS_PER_CYCLE=20
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Active-set rate limits
    rate_live_seconds: float = Field(
        default=120.0,
        ge=0.0,
        description="Minimum time between checks of a live (or recently live) stream",
    )
    rate_off_seconds: float = Field(
        default=420.0,
        ge=0.0,
        description="Minimum time between checks of an offline stream",
    )
    recently_live_threshold_seconds: float = Field(
        default=1200.0,
        ge=0.0,
        description="Window after last live during which a stream counts as recently live",
    )

    # Watch-list continuous rate formula
    watch_base_rate_seconds: float = Field(
        default=900.0,
        ge=0.0,
        description="Interval floor for every watch-list priority below 100",
    )
    watch_max_rate_seconds: float = Field(
        default=5400.0,
        ge=0.0,
        description="Interval at priority 0",
    )
    watch_steepness: float = Field(
        default=4.0,
        gt=0.0,
        description="Decay factor k in base + (max - base) * 2^(-k * p / 100)",
    )
    max_known_checks_per_cycle: int = Field(
        default=10,
        ge=0,
        description="Cap on watch-list checks actually performed per cycle",
    )

    # Loop timing
    loop_delay_min_seconds: float = Field(default=10.0, ge=0.0)
    loop_delay_max_seconds: float = Field(default=20.0, ge=0.0)
    error_retry_delay_seconds: float = Field(default=30.0, ge=0.0)

    # Archiving
    archive_enabled: bool = False
    archive_threshold_minutes: float = Field(
        default=30.0,
        ge=0.0,
        description="Minutes since last live (or last update) before an offline stream is archived",
    )
    archive_check_interval_seconds: float = Field(default=300.0, ge=0.0)
    archive_pacing_seconds: float = Field(
        default=0.1,
        ge=0.0,
        description="Fixed pause between archive calls",
    )

    # Millisecond deployment variables
    rate_live_ms: float | None = Field(default=None, ge=0.0, validation_alias="RATE_LIVE")
    rate_off_ms: float | None = Field(default=None, ge=0.0, validation_alias="RATE_OFF")
    archive_check_interval_ms: float | None = Field(
        default=None, ge=0.0, validation_alias="ARCHIVE_CHECK_INTERVAL"
    )

    @model_validator(mode="after")
    def _apply_millisecond_settings(self) -> "SchedulerConfig":
        pairs = (
            ("rate_live_ms", "rate_live_seconds"),
            ("rate_off_ms", "rate_off_seconds"),
            ("archive_check_interval_ms", "archive_check_interval_seconds"),
        )
        for ms_field, seconds_field in pairs:
            ms = getattr(self, ms_field)
            if ms is not None and seconds_field not in self.model_fields_set:
                setattr(self, seconds_field, ms / 1000)
        return self

    @model_validator(mode="after")
    def _check_loop_delays(self) -> "SchedulerConfig":
        if self.loop_delay_min_seconds > self.loop_delay_max_seconds:
            raise ValueError("loop_delay_min_seconds must not exceed loop_delay_max_seconds")
        return self

    @property
    def live_rate(self) -> timedelta:
        return timedelta(seconds=self.rate_live_seconds)

    @property
    def offline_rate(self) -> timedelta:
        return timedelta(seconds=self.rate_off_seconds)

    @property
    def recently_live_threshold(self) -> timedelta:
        return timedelta(seconds=self.recently_live_threshold_seconds)

    @property
    def archive_check_interval(self) -> timedelta:
        return timedelta(seconds=self.archive_check_interval_seconds)
