from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Pricing Engine"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    APP_DOMAIN: str = "example.com"
    APP_DATABASE_DSN: str = "sqlite:////tmp/pricing.db"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Rate limiting
    RATE_LIMIT_COUPON_VALIDATIONS_PER_MINUTE: int = 120

    # Rule defaults
    DEFAULT_RULE_PRIORITY: int = 10

    # Coupon code generation
    COUPON_CODE_LENGTH: int = 8
    MAX_BULK_COUPONS: int = 500

    @property
    def version(self) -> str:
        return self.APP_VERSION


settings = Settings()
