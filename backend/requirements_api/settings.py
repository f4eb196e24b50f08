from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

DEFAULT_CORS_ORIGINS = [
	"http://localhost:3000",
	"https://localhost:3001",
	"http://localhost:3001",
	"http://127.0.0.1:3000",
	"https://127.0.0.1:3001",
]


class Settings(BaseSettings):
	# Perplexity chat completions; without a key every analysis uses the mock engine
	perplexity_api_key: str | None = Field(default=None, validation_alias="PERPLEXITY_API_KEY")
	perplexity_base_url: str = Field(default="https://api.perplexity.ai", validation_alias="PERPLEXITY_BASE_URL")
	perplexity_model: str = Field(default="llama-3.1-sonar-large-128k-online", validation_alias="PERPLEXITY_MODEL")
	perplexity_max_tokens: int = Field(default=2000, validation_alias="PERPLEXITY_MAX_TOKENS")
	perplexity_temperature: float = Field(default=0.1, validation_alias="PERPLEXITY_TEMPERATURE")
	perplexity_timeout_seconds: float = Field(default=30, validation_alias="PERPLEXITY_TIMEOUT_SECONDS")

	# Pause between upstream calls in batch analysis (rate limiting)
	batch_delay_seconds: float = Field(default=0.5, validation_alias="BATCH_DELAY_SECONDS")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	# Runtime
	environment: str = Field(default="Development", validation_alias="APP_ENV")
	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
	log_dir: str | None = Field(default="logs", validation_alias="LOG_DIR")
	cors_origins: list[str] = Field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS), validation_alias="CORS_ORIGINS")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

	@property
	def perplexity_configured(self) -> bool:
		return bool(self.perplexity_api_key)


settings = Settings()
