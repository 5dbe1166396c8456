import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class Settings(BaseModel):
    """
    Process-wide configuration for the notes and bookmarks manager.
    """
    secret_key: str = Field(..., min_length=1, description="JWT signing key")
    bcrypt_rounds: int = Field(12, ge=4, le=31)
    title_fetch_timeout: float = Field(5.0, gt=0)
    cors_origins: str = "*"
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_secret_key():
    """
    Retrieves the signing key from the environment variable SECRET_KEY.
    """
    secret_key = os.getenv("SECRET_KEY")
    if not secret_key:
        raise ValueError("SECRET_KEY environment variable not set.")
    return secret_key


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """
    Builds Settings from the environment, reading a .env file first if present.
    """
    load_dotenv()
    return Settings(
        secret_key=get_secret_key(),
        bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "12")),
        title_fetch_timeout=float(os.getenv("TITLE_FETCH_TIMEOUT", "5")),
        cors_origins=os.getenv("CORS_ORIGINS", "*"),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
