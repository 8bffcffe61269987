from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "local"
    APP_NAME: str = "Booking Intake API"
    LOG_LEVEL: str = "INFO"
    # Comma-separated origins for CORS (e.g. https://bookings.example.org). If empty, uses the defaults below.
    CORS_ORIGINS: str = ""

    DATABASE_URL: str = "sqlite:///./bookings.db"

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Render and others give postgres://; SQLAlchemy expects postgresql+psycopg2://."""
        if v and v.startswith("postgres://"):
            return "postgresql+psycopg2://" + v[11:]
        return v
    REDIS_URL: str = "redis://localhost:6379/0"

    # Rate limiting / abuse guard
    RATE_LIMIT_STORE: str = "redis"  # redis|memory
    RATE_LIMIT_PREFIX: str = "guard"
    SAFELIST_IPS: str = "127.0.0.1,::1"
    BLOCKLIST_IPS: str = ""
    BLOCKED_USER_AGENTS: str = r"curl|wget|python-requests|scrapy"

    THROTTLE_REQ_IP_LIMIT: int = 300
    THROTTLE_REQ_IP_PERIOD: int = 300
    THROTTLE_BOOKINGS_IP_LIMIT: int = 5
    THROTTLE_BOOKINGS_IP_PERIOD: int = 3600
    THROTTLE_BOOKINGS_EMAIL_LIMIT: int = 3
    THROTTLE_BOOKINGS_EMAIL_PERIOD: int = 3600

    # fail2ban-like adaptive ban
    BAN_MAX_RETRY: int = 5
    BAN_FIND_TIME: int = 60
    BAN_TIME: int = 3600

    # Booking bodies are buffered before routing; anything larger gets 413
    MAX_BODY_BYTES: int = 64 * 1024

    # Age sanity bounds for birth_date
    MIN_AGE_YEARS: int = 18
    MAX_AGE_YEARS: int = 98

    @property
    def cors_origins(self) -> list[str]:
        if not self.CORS_ORIGINS:
            return ["http://localhost:3000", "https://ivonnebenitesrodriguez.github.io"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def safelist_ips(self) -> set[str]:
        return {ip.strip() for ip in self.SAFELIST_IPS.split(",") if ip.strip()}

    @property
    def blocklist_ips(self) -> set[str]:
        return {ip.strip() for ip in self.BLOCKLIST_IPS.split(",") if ip.strip()}


settings = Settings()
