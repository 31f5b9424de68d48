"""
Parrot Service Configuration
"""

from typing import List, Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, model_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # ===== Service =====
    SERVICE_NAME: str = Field(default="parrot-service")
    SERVICE_VERSION: str = Field(default="1.0.0")
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)
    LOG_LEVEL: str = Field(default="info")
    DEBUG: bool = Field(default=False)

    # ===== CORS =====
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"]
    )

    # ===== Message store =====
    MESSAGE_STORE: Literal["mongo", "memory"] = Field(default="mongo")
    MONGODB_URI: str = Field(default="mongodb://localhost:27017")
    MONGODB_DB: str = Field(default="parrot_bot")
    MESSAGES_COLLECTION: str = Field(default="messages")
    USERS_COLLECTION: str = Field(default="users")

    # ===== Markov =====
    MARKOV_MIN_TOKENS: int = Field(default=3, ge=1)
    MARKOV_MIN_SENTENCES: int = Field(default=1, ge=1)
    MARKOV_MAX_SENTENCES: int = Field(default=5, ge=1)
    # Hard cap on words per generated sentence, guards against cycles
    MARKOV_MAX_WORDS: int = Field(default=100, ge=1)
    # True: drop short samples and keep going. False: abort the whole load
    MARKOV_SKIP_SHORT_INPUTS: bool = Field(default=True)
    CHAIN_CACHE_SIZE: int = Field(default=64, ge=1)

    @model_validator(mode="after")
    def _check_sentence_bounds(self) -> "Settings":
        if self.MARKOV_MIN_SENTENCES > self.MARKOV_MAX_SENTENCES:
            raise ValueError(
                f"MARKOV_MIN_SENTENCES ({self.MARKOV_MIN_SENTENCES}) must not exceed "
                f"MARKOV_MAX_SENTENCES ({self.MARKOV_MAX_SENTENCES})"
            )
        return self

    # >>> pydantic v2 settings config <<<
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
