import os

# Basic settings helper to read environment configuration.

DEFAULT_PLACES_API_BASE_URL = "https://maps.googleapis.com/maps/api"


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_float(val: str | None, default: float) -> float:
    if val is None or not val.strip():
        return default
    try:
        return float(val)
    except ValueError:
        return default


class Settings:
    def __init__(self) -> None:
        self.GOOGLE_MAPS_API_KEY: str | None = os.getenv("GOOGLE_MAPS_API_KEY") or None
        self.PLACES_API_BASE_URL: str = os.getenv("PLACES_API_BASE_URL", DEFAULT_PLACES_API_BASE_URL)
        self.PLACES_LANGUAGE: str = os.getenv("PLACES_LANGUAGE", "ja")
        self.PLACES_REGION: str = os.getenv("PLACES_REGION", "jp")
        self.PLACES_HTTP_TIMEOUT: float = _as_float(os.getenv("PLACES_HTTP_TIMEOUT"), 5.0)
        # Acceptance radius for name-search candidates around the geocoded anchor.
        self.PLACE_RESOLVE_RADIUS_M: float = _as_float(os.getenv("PLACE_RESOLVE_RADIUS_M"), 400.0)
        self.PLACES_DEBUG_ALLOWED: bool = _as_bool(os.getenv("PLACES_DEBUG_ALLOWED"), True)
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
