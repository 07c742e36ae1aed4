"""Application configuration."""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Strike Coach"
    debug: bool = False
    api_prefix: str = "/api"

    # Database (SQLite for local dev)
    database_url: str = "sqlite+aiosqlite:///./strike_coach.db"
    database_url_sync: str = "sqlite:///./strike_coach.db"

    # Motion tracking
    tracking_confidence_floor: float = 0.5  # Landmarks below this are not tracked
    smoothing_factor: float = 0.7  # Weight of the previous smoothed value in the EMA
    history_size: int = 30  # Rolling samples kept per landmark
    velocity_scale: float = 1.0  # Multiplier from coordinate units to velocity units
    mirror_x: bool = True  # Selfie cameras deliver a horizontally mirrored image
    dynamic_confidence_base: float = 0.3

    # Strike classification
    strike_cooldown_ms: float = 500.0  # At most one strike per window
    core_confidence_threshold: float = 0.65  # Shoulders and hips
    arm_confidence_threshold: float = 0.65  # Wrist and elbow for punches
    leg_confidence_threshold: float = 0.5  # Ankle, knee and hip for kicks
    min_guard_score: float = 0.6
    min_extension_angle: float = 150.0
    min_hip_twist: float = 20.0
    max_roundhouse_knee_angle: float = 140.0  # Above this the leg is extended, not chambered
    min_roundhouse_hip_angle: float = 45.0
    jab_velocity_threshold: float = 150.0
    cross_velocity_threshold: float = 200.0
    roundhouse_velocity_threshold: float = 250.0

    # Technique reference matching
    reference_pass_score: float = 70.0

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
