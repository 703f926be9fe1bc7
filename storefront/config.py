from typing import Optional

from pydantic_settings import BaseSettings
from urllib.parse import quote_plus

class Settings(BaseSettings):
    postgres_user: str = "postgres"
    postgres_password: str = ""
    postgres_db: str = "storefront"
    postgres_host: str = "localhost"
    postgres_port: str = "5432"

    # full URL override (tests, sqlite, managed databases)
    sqlalchemy_url: Optional[str] = None

    secret_key: str = "change-me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    ENV: str = "local"
    LOG_LEVEL: str = "INFO"

    base_url: str = "http://localhost:3000"

    CURRENCY: str = "PEN"

    PAYMENT_PROVIDER: str = "mercadopago"
    PAYMENT_GATEWAY_TIMEOUT: int = 15

    MP_ACCESS_TOKEN: Optional[str] = None
    MP_API_URL: str = "https://api.mercadopago.com"

    RAZORPAY_KEY_ID: Optional[str] = None
    RAZORPAY_KEY_SECRET: Optional[str] = None

    RESERVATION_STALE_MINUTES: int = 30

    @property
    def database_url(self):
        if self.sqlalchemy_url:
            return self.sqlalchemy_url
        encoded_password = quote_plus(self.postgres_password)
        return (
            f"postgresql+psycopg2://{self.postgres_user}:"
            f"{encoded_password}@{self.postgres_host}:"
            f"{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def site_url(self):
        return self.base_url.rstrip("/")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "allow"

settings = Settings()
