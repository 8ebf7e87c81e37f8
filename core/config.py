import os
from dotenv import load_dotenv

# Load .env file
load_dotenv()

class Settings:
    # Geocoding provider ("google" or "nominatim")
    GEOCODER_PROVIDER: str = os.getenv("GEOCODER_PROVIDER", "google")
    GOOGLE_MAPS_API_KEY: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
    NOMINATIM_USER_AGENT: str = os.getenv("NOMINATIM_USER_AGENT", "neighbourhood-resolver")
    GEOCODER_TIMEOUT: float = float(os.getenv("GEOCODER_TIMEOUT", "10"))
    GEOCODER_LANGUAGE: str = os.getenv("GEOCODER_LANGUAGE", "en-NZ")

    # Resolution cache ("memory", "redis" or "none")
    CACHE_BACKEND: str = os.getenv("CACHE_BACKEND", "memory")
    CACHE_TTL_SECONDS: int = int(os.getenv("CACHE_TTL_SECONDS", "86400"))
    CACHE_NEGATIVE_TTL_SECONDS: int = int(os.getenv("CACHE_NEGATIVE_TTL_SECONDS", "3600"))
    CACHE_MAX_ENTRIES: int = int(os.getenv("CACHE_MAX_ENTRIES", "10000"))
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # Proximity ranking
    PROXIMITY_CONCURRENCY: int = int(os.getenv("PROXIMITY_CONCURRENCY", "6"))
    DEFAULT_RADIUS_KM: float = float(os.getenv("DEFAULT_RADIUS_KM", "10"))
    SAME_REGION_ESTIMATE_KM: float = float(os.getenv("SAME_REGION_ESTIMATE_KM", "2.5"))
    OTHER_REGION_MARGIN_KM: float = float(os.getenv("OTHER_REGION_MARGIN_KM", "20"))
    UNFILTERED_OTHER_REGION_KM: float = float(os.getenv("UNFILTERED_OTHER_REGION_KM", "50"))

    # Neighbourhood matching ("first" or "most_specific")
    MATCHER_TIE_BREAK: str = os.getenv("MATCHER_TIE_BREAK", "first")
    TAXONOMY_PATH: str = os.getenv("TAXONOMY_PATH", "")

    # Device location fixes older than this are rejected (seconds)
    DEVICE_LOCATION_MAX_AGE: int = int(os.getenv("DEVICE_LOCATION_MAX_AGE", "300"))

    ALLOWED_ORIGINS: str = os.getenv("ALLOWED_ORIGINS", "")

settings = Settings()
