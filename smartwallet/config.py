import os
from dataclasses import dataclass, field
from typing import List, Optional


def _env_flag(name: str) -> bool:
    return os.getenv(name, "0") == "1"


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


@dataclass(frozen=True)
class Settings:
    db_path: str = "smartwallet.sqlite3"
    api_key: str = ""
    docs_enabled: bool = False
    debug: bool = False
    cors_origins: List[str] = field(default_factory=list)
    log_level: str = "INFO"
    mock_seed: Optional[int] = None
    http_timeout: float = 10.0

    notify_permission: str = "granted"  # granted | denied | default
    notify_to: Optional[str] = None
    vonage_api_key: Optional[str] = None
    vonage_api_secret: Optional[str] = None
    vonage_from: str = "SMARTWALLET"

    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    alpha_vantage_api_key: str = ""
    openweather_api_key: str = ""
    newsapi_key: str = ""
    exchangerate_api_url: str = "https://api.exchangerate-api.com/v4/latest"


def load_settings() -> Settings:
    return Settings(
        db_path=(
            os.environ.get("DB_PATH")
            or os.environ.get("SMARTWALLET_DB_PATH")
            or "smartwallet.sqlite3"  # fallback
        ),
        api_key=os.getenv("SMARTWALLET_API_KEY", ""),
        docs_enabled=_env_flag("SMARTWALLET_DOCS"),
        debug=_env_flag("SMARTWALLET_DEBUG"),
        cors_origins=[o for o in os.getenv("SMARTWALLET_CORS", "").split(",") if o],
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        mock_seed=_env_int("MOCK_SEED"),
        http_timeout=float(os.getenv("HTTP_TIMEOUT", "10")),
        notify_permission=os.getenv("NOTIFY_PERMISSION", "granted").lower(),
        notify_to=os.getenv("NOTIFY_TO") or None,
        vonage_api_key=os.getenv("VONAGE_API_KEY") or None,
        vonage_api_secret=os.getenv("VONAGE_API_SECRET") or None,
        vonage_from=os.getenv("VONAGE_FROM", "SMARTWALLET"),
        gemini_api_key=(os.getenv("GEMINI_API_KEY") or "").strip(),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.0-flash"),
        alpha_vantage_api_key=(os.getenv("ALPHA_VANTAGE_API_KEY") or "").strip(),
        openweather_api_key=(os.getenv("OPENWEATHER_API_KEY") or "").strip(),
        newsapi_key=(os.getenv("NEWSAPI_KEY") or "").strip(),
        exchangerate_api_url=os.getenv(
            "EXCHANGERATE_API_URL", "https://api.exchangerate-api.com/v4/latest"
        ),
    )
