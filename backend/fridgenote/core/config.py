# 환경변수 로딩 (.env)
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_ENV: str = "development"  # production | development | test
    LOG_LEVEL: str = "INFO"

    # 식약처 조리식품 레시피 OpenAPI (MFDS_API_KEY 우선)
    MFDS_API_KEY: Optional[str] = None
    FOODSAFETY_API_KEY: Optional[str] = None
    MFDS_BASE_URL: str = "https://openapi.foodsafetykorea.go.kr/api"
    MFDS_SERVICE_ID: str = "COOKRCP01"

    OPEN_FOOD_FACTS_URL: str = "https://world.openfoodfacts.org/api/v2/product"

    MONGODB_URI: str = "mongodb://localhost:27017"  # 필요 시 prod/staging로 분리
    MONGODB_DB: str = "fridgenote"

    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "capacitor://localhost",
    ]

    # 요청 제한: 운영은 40회/분, 그 외 환경은 더 낮게
    RATE_LIMIT_WINDOW_SECONDS: float = 60.0
    RATE_LIMIT_MAX_REQUESTS: int = 40
    RATE_LIMIT_MAX_REQUESTS_DEV: int = 20

    # 외부 API 호출 정책
    UPSTREAM_TIMEOUT_SECONDS: float = 4.5
    UPSTREAM_RETRY_COUNT: int = 2
    UPSTREAM_RETRY_DELAY_SECONDS: float = 0.25

    # 재료 카탈로그
    CATALOG_TTL_SECONDS: float = 15 * 60
    CATALOG_CHUNK_SIZE: int = 200
    CATALOG_MAX_SCAN: int = 1200

    @property
    def mfds_api_key(self) -> Optional[str]:
        return (self.MFDS_API_KEY or self.FOODSAFETY_API_KEY or "").strip() or None

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"

    @property
    def rate_limit_max_requests(self) -> int:
        if self.is_production:
            return self.RATE_LIMIT_MAX_REQUESTS
        return min(self.RATE_LIMIT_MAX_REQUESTS, self.RATE_LIMIT_MAX_REQUESTS_DEV)


settings = Settings()
