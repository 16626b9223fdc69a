import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # API settings
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8080"))

    # Collaborator services
    library_service_url: str = os.getenv("LIBRARY_SERVICE_URL", "http://localhost:8060")
    rating_service_url: str = os.getenv("RATING_SERVICE_URL", "http://localhost:8050")
    reservation_service_url: str = os.getenv("RESERVATION_SERVICE_URL", "http://localhost:8070")

    # HTTP client settings
    http_timeout: float = float(os.getenv("HTTP_TIMEOUT", "10"))
    http_connect_timeout: float = float(os.getenv("HTTP_CONNECT_TIMEOUT", "5"))
    http_retries: int = int(os.getenv("HTTP_RETRIES", "2"))  # GET only
    http_retry_backoff: float = float(os.getenv("HTTP_RETRY_BACKOFF", "0.5"))
    http_max_connections: int = int(os.getenv("HTTP_MAX_CONNECTIONS", "100"))
    http_max_keepalive: int = int(os.getenv("HTTP_MAX_KEEPALIVE", "20"))

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Library Gateway")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    debug: bool = _flag("DEBUG", "False")
    environment: str = os.getenv("ENVIRONMENT", "development")

    def service_urls(self) -> dict:
        return {
            "library": self.library_service_url,
            "rating": self.rating_service_url,
            "reservation": self.reservation_service_url,
        }


settings = Settings()
