"""
Configuration settings using Pydantic
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings

# Get the project root directory
BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = BASE_DIR / ".env"


class Settings(BaseSettings):
    """Engine settings loaded from environment variables"""

    # App
    APP_NAME: str = "Agent Flow Engine"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # OpenAI (Reasoning Client)
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    REASONING_TEMPERATURE: float = 0.3
    REASONING_MAX_TOKENS: int = 512
    REASONING_TIMEOUT_SECONDS: float = 30.0
    REASONING_MAX_RETRIES: int = 2

    # Flow interpreter
    FLOW_MAX_STEPS: int = 20  # Node visits per turn
    WAIT_MAX_MS: int = 60000  # Upper bound for a single wait node
    VALIDATE_ON_LOAD: bool = True
    KNOWLEDGE_FALLBACK_TEXT: str = "Sorry, I couldn't find an answer to that in my knowledge base."

    # HTTP request nodes
    API_CALL_DEFAULT_TIMEOUT_MS: int = 10000

    class Config:
        env_file = str(ENV_FILE)
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
