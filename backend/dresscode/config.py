from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite+aiosqlite:///./dresscode.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Redis (rate limiting)
    redis_url: str = "redis://localhost:6379/0"

    # Reasoning backend (OpenAI-compatible)
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    llm_model: str = "gpt-4o"
    reasoning_mode: str = "assistant"  # "assistant" | "chat"
    reasoning_timeout: float = 60.0
    reasoning_poll_initial_delay: float = 1.0
    reasoning_poll_max_retries: int = 5
    reasoning_max_tokens: int = 1000

    # Compliance behaviour
    use_fallback: bool = False
    mask_backend_failures: bool = False
    strict_result_consistency: bool = False
    max_image_bytes: int = 20 * 1024 * 1024

    # App
    admin_token: str = ""
    environment: str = "development"
    log_level: str = "INFO"
    log_format: str = "text"  # "text" | "json"

    # Security
    allowed_origins: str = "http://localhost:3000,http://localhost:5173,http://localhost"
    rate_limit_per_minute: int = 60

    model_config = {"env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def _validate_production(self):
        if self.environment == "production":
            if self.database_url.startswith("sqlite"):
                raise ValueError(
                    "Production requires a PostgreSQL DATABASE_URL"
                )
            if not self.admin_token:
                raise ValueError(
                    "Production requires ADMIN_TOKEN to protect the settings API"
                )
        if self.reasoning_mode not in ("assistant", "chat"):
            raise ValueError("REASONING_MODE must be 'assistant' or 'chat'")
        return self


settings = Settings()
