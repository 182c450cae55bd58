from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    # 🎯 Application
    APP_NAME: str = "Megaflix API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False  # ⚠️ Must be False in production
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440
    RESET_TOKEN_EXPIRE_MINUTES: int = 30

    # 🌐 Server
    HOST: str = '0.0.0.0'
    PORT: int = 8000

    # 🗄️ Database
    DATABASE_URL: str  # must come from env
    DB_ECHO: bool = False

    # 🔴 Redis (catalog cache)
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_ENABLED: bool = True
    CATALOG_CACHE_EXPIRATION: int = 3600

    # 🔒 CORS
    ALLOWED_ORIGINS: str = "http://localhost:5173,http://localhost:8080"

    # 🎬 TMDB metadata catalog
    TMDB_API_KEY: Optional[str] = None
    TMDB_BASE_URL: str = "https://api.themoviedb.org/3"
    TMDB_LANGUAGE: str = "pt-BR"
    TMDB_TIMEOUT: float = 15.0

    # ▶️ Embedded player
    PLAYER_EMBED_BASE_URL: str = "https://megaembed.com/embed"

    # 🔐 Admin accounts (comma separated emails)
    ADMIN_EMAILS: str = ""

    # 🔐 Password Policy
    MIN_PASSWORD_LENGTH: int = 6

    # 📊 Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = 'ignore'

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into list"""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(',') if origin.strip()]

    @property
    def admin_emails_list(self) -> List[str]:
        """Parse ADMIN_EMAILS string into a lowercase list"""
        return [email.strip().lower() for email in self.ADMIN_EMAILS.split(',') if email.strip()]

    @property
    def is_catalog_enabled(self) -> bool:
        """Check if the TMDB catalog is configured"""
        return bool(self.TMDB_API_KEY)

settings = Settings()
