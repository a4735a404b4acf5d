from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # -------------------------
    # App core settings
    # -------------------------
    APP_NAME: str = "NidhiSaarthi AI Backend"
    ENV: str = "dev"
    CORS_ORIGINS: List[str] = ["*"]

    # -------------------------
    # Database / session store
    # -------------------------
    DATABASE_URL: str = "sqlite:///./nidhisaarthi.db"
    SESSION_BACKEND: str = "memory"  # memory | sql

    # -------------------------
    # Remote model (OpenRouter compatible)
    # -------------------------
    OPENROUTER_API_KEY: Optional[str] = None
    LLM_API_URL: str = "https://openrouter.ai/api/v1/chat/completions"
    LLM_MODELS: List[str] = [
        "arcee-ai/trinity-mini:free",
        "mistralai/mistral-7b-instruct:free",
    ]
    LLM_TEMPERATURE: float = 0.4
    LLM_MAX_TOKENS: int = 700
    LLM_TIMEOUT_SECONDS: float = 30.0
    LLM_MAX_RETRIES: int = 2
    LLM_BACKOFF_SECONDS: float = 1.0

    # -------------------------
    # Conversation
    # -------------------------
    RAG_TOP_K: int = 4
    HISTORY_WINDOW: int = 10
    TYPEWRITER_CHUNK_SIZE: int = 24
    TYPEWRITER_DELAY_SECONDS: float = 0.016

    # -------------------------
    # Pydantic v2 config
    # -------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="forbid"
    )


# Singleton
settings = Settings()
