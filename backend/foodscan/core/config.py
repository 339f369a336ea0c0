from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central settings object.
    Values come from env vars; locally you can use backend/.env.
    """
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Open Food Facts
    OFF_BASE_URL: str = "https://world.openfoodfacts.org"
    OFF_USER_AGENT: str = "FoodScan/0.1.0 (food-scanner kiosk)"
    OFF_LANGUAGE: str = "de"
    OFF_TIMEOUT_SECONDS: float = 15.0
    OFF_MAX_RETRIES: int = 2
    OFF_MAX_BACKOFF_SECONDS: float = 10.0

    # Alternatives
    ALTERNATIVES_PAGE_SIZE: int = 5
    REGION_COUNTRY_FILTER: str = "switzerland"
    REGION_COUNTRY_TAGS: List[str] = [
        "en:switzerland",
        "de:schweiz",
        "fr:suisse",
        "it:svizzera",
        "switzerland",
        "schweiz",
        "suisse",
        "svizzera",
    ]
    REGION_PURCHASE_PLACE: str = "switzerland"
    RETAILER_STORE_FILTER: str = "coop"
    RETAILER_SLUGS: List[str] = ["coop", "coop-pronto", "coop-city", "coop-online", "coop-ch"]
    RETAILER_BRAND_FRAGMENT: str = "coop"

    # Remote images we are willing to hand out to clients
    IMAGE_HOST: str = "images.openfoodfacts.org"
    IMAGE_PATH_PATTERN: str = "/images/**"

    # Scanner
    CAMERA_PROBE_LIMIT: int = 4
    SCAN_FRAME_INTERVAL_SECONDS: float = 0.05
    SCAN_MAX_FAILED_READS: int = 50

    # Versioning
    APP_VERSION: str = "0.1.0"
    BUILD_ID: str = "dev"

    LOG_LEVEL: str = "INFO"
    CORS_ALLOW_ORIGINS: List[str] = ["*"]


# other modules import this
settings = Settings()
