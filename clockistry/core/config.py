import os
from dataclasses import dataclass
from functools import lru_cache
from zoneinfo import ZoneInfo


DEV_ENVIRONMENTS = frozenset({"dev", "local", "test"})


@dataclass(frozen=True)
class Settings:
    jwt_secret: str
    jwt_exp_hours: int
    env: str
    log_level: str
    app_timezone: str
    clock_skew_seconds: int
    host: str
    port: int

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.app_timezone)

    @property
    def is_dev(self) -> bool:
        return self.env in DEV_ENVIRONMENTS


def load_settings() -> Settings:
    return Settings(
        jwt_secret=os.getenv("JWT_SECRET", ""),
        jwt_exp_hours=int(os.getenv("JWT_EXP_HOURS", "8")),
        env=os.getenv("ENV", "dev").lower(),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        app_timezone=os.getenv("APP_TIMEZONE", "UTC"),
        clock_skew_seconds=int(os.getenv("CLOCK_SKEW_SECONDS", "60")),
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, read from the environment on first use."""
    return load_settings()
