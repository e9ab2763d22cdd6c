from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv(override=True)

class Settings(BaseSettings):
    PROJECT_NAME: str = "Eco-Verify"
    # Application settings
    HOST: str = "0.0.0.0"
    PORT: int = 4000
    VERSION: str = "1.0.0"
    CORS_ORIGINS: str = "*"

    # Fone node, read only on the backend and never sent to the front
    FONE_BASE_URL: str | None = None
    FONE_SDK_KEY: str | None = None
    FONE_TIMEOUT_SECONDS: float = 15.0

    # SQLAlchemy database URL
    DATABASE_URL: str | None = None
    DATABASE_SSL: bool = False
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 10

    # Debug settings
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

    @property
    def fone_configured(self) -> bool:
        return bool(self.FONE_BASE_URL and self.FONE_SDK_KEY)

    @property
    def db_configured(self) -> bool:
        return bool(self.DATABASE_URL)

# Instantiate the settings
settings = Settings()
