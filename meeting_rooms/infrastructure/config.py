"""Centralized application configuration using Pydantic settings."""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from meeting_rooms.domain.policies import ReservationPolicy


class Settings(BaseSettings):
    """Environment-driven configuration for the reservation API."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = Field(default="Meeting Room Reservation API", description="FastAPI title")
    timezone: str = Field(default="America/Mexico_City", description="Organization local time zone")
    min_advance_hours: int = Field(default=3, description="Minimum notice before a meeting starts")
    business_hours_start: int = Field(default=7, description="Earliest start hour")
    business_hours_end: int = Field(default=19, description="Latest end hour")
    coffee_break_start_hour: int = Field(default=9, description="Late-morning coffee window start hour")
    coffee_break_end_hour: int = Field(default=13, description="Late-morning coffee window end hour")
    coffee_break_min_hours: float = Field(default=1, description="Minimum duration for a coffee break")
    upcoming_window_hours: int = Field(default=24, description="Default horizon for upcoming meetings")

    jwt_secret: str = Field(default="super-secret", description="JWT signing secret")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    access_token_expire_minutes: int = Field(default=30, description="Token lifetime in minutes")

    log_level: str = Field(default="INFO", description="Root log level")
    seed_demo_data: bool = Field(default=True, description="Seed demo users and rooms on startup")

    def reservation_policy(self) -> ReservationPolicy:
        return ReservationPolicy(
            timezone=self.timezone,
            min_advance_hours=self.min_advance_hours,
            business_hours_start=self.business_hours_start,
            business_hours_end=self.business_hours_end,
            coffee_break_start_hour=self.coffee_break_start_hour,
            coffee_break_end_hour=self.coffee_break_end_hour,
            coffee_break_min_hours=self.coffee_break_min_hours,
        )


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of the Settings object."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the cached Settings instance (useful for tests)."""

    get_settings.cache_clear()
