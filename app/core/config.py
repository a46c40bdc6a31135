# app/core/config.py
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables (.env file).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    APP_NAME: str = "Truck Route Planner"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Backend that owns route computation (/api/plan-route/, /api/route-through-stops/)
    ROUTING_BACKEND_URL: str = "http://localhost:8000"
    HTTP_TIMEOUT_S: float = 30.0

    # Geoapify autocomplete; an empty key disables suggestions
    GEOAPIFY_API_KEY: str = ""
    GEOAPIFY_AUTOCOMPLETE_URL: str = "https://api.geoapify.com/v1/geocode/autocomplete"
    SUGGEST_COUNTRY_CODE: str = "us"
    SUGGEST_LIMIT: int = 8
    SUGGEST_MIN_CHARS: int = 2
    SUGGEST_DEBOUNCE_MS: float = 200.0

    # Max distance (degrees) for a detour point to count as "on the base route"
    DETOUR_THRESHOLD_DEG: float = 0.0005

    # How much of an unparseable body ends up in error messages
    ERROR_EXCERPT_CHARS: int = 200

    # Planner sessions kept in memory; the least recently used one goes first
    MAX_SESSIONS: int = 1000
    # Sessions untouched for this long are closed (<= 0 keeps them forever)
    SESSION_IDLE_TTL_S: float = 1800.0

    @field_validator("GEOAPIFY_API_KEY")
    @classmethod
    def _strip_quotes(cls, value: str) -> str:
        # Keys pasted into .env often keep their quotes
        return value.strip().strip("'\"")

    @property
    def suggestions_enabled(self) -> bool:
        return bool(self.GEOAPIFY_API_KEY)


settings = Settings()
