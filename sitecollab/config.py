from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7

    cors_origins: List[str] = ["http://localhost:3000"]

    log_level: str = "INFO"
    log_format: str = "text"

    db_echo: bool = False
    create_schema_on_startup: bool = True

    # Политика ретранслятора: мутирующие события только для участников с правом записи
    collab_enforce_write_access: bool = True
    # Гости по ссылке должны предъявить совпадающий linkToken при рукопожатии
    collab_require_link_token: bool = False

    # PostgreSQL variables for Docker
    postgres_user: str = ""
    postgres_password: str = ""
    postgres_db: str = ""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


def get_settings() -> Settings:
    return Settings()
