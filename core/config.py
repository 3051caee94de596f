from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    DATABASE_URL: str = Field(..., description="Async PostgreSQL connection string (postgresql+asyncpg://...)")
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # Redis
    REDIS_URL: str = Field("redis://localhost:6379/0")

    # Auth
    AUTH_SECRET: str = Field(..., description="Secret used to sign caller tokens")
    TOKEN_TTL_SECONDS: int = 2592000  # 30 days

    # Quiz Settings
    MAX_QUESTIONS_PER_QUIZ: int = 30
    OPTIONS_PER_QUESTION: int = 4

    # AI Quiz Generation (Groq)
    GROQ_API_KEY: str = Field("", description="Groq API key for AI quiz generation")
    GROQ_MODEL: str = Field("llama-3.3-70b-versatile", description="Groq model to use")
    GROQ_SERVICE_TIER: str = Field("on_demand", description="Groq service tier: on_demand, flex, or auto")
    GROQ_TIMEOUT_SECONDS: float = 180.0
    GENERATION_RATE_LIMIT: int = Field(3, description="Quiz generations allowed per user per minute")

    # Environment
    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    ENV: str = "production"  # development, staging, production
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

settings = Settings()
