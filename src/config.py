"""Centralised application settings loaded from environment / .env file."""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    host: str = "0.0.0.0"
    port: int = 4000
    cors_origins: list[str] = ["http://localhost:3000"]
    log_level: str = "INFO"

    # Driver simulation
    motion_steps: int = 30
    step_delay_seconds: float = 1.5
    arrival_delay_seconds: float = 0.5  # pickup reached -> driver_arriving
    boarding_delay_seconds: float = 1.5  # driver_arriving -> ongoing
    dropoff_delay_seconds: float = 2.0  # drop reached -> completed
    driver_jitter_degrees: float = 0.01  # ~1 km at city latitudes
    random_seed: Optional[int] = None

    # Mock driver profile
    driver_name: str = "Ravi"
    driver_car: str = "Swift Dzire - KA01AB1234"
    driver_photo: str = "/driver-placeholder.png"

    # Pricing
    base_fare: float = 25.0  # INR
    rate_per_km: float = 10.0  # INR / km
    rate_per_min: float = 1.0  # INR / min
    surge_multiplier: float = 1.0

    # Offline routing
    average_speed_kmh: float = 25.0
    max_route_km: float = 500.0  # longer legs are reported as unroutable

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
