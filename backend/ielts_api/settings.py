from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
	# Chat model used for both test generation and grading
	openai_model: str = Field(default="gpt-4o-mini", validation_alias="OPENAI_MODEL")
	openai_base_url: str = Field(default="https://api.openai.com/v1", validation_alias="OPENAI_BASE_URL")
	openai_transcribe_model: str = Field(default="whisper-1", validation_alias="OPENAI_TRANSCRIBE_MODEL")
	openai_timeout_seconds: float = Field(default=60.0, validation_alias="OPENAI_TIMEOUT_SECONDS")
	openai_temperature: float = Field(default=0.0, validation_alias="OPENAI_TEMPERATURE")
	openai_max_tokens: int = Field(default=900, validation_alias="OPENAI_MAX_TOKENS")

	# Public site used to build shareable test links; empty means relative links
	site_base: str = Field(default="", validation_alias="SITE_BASE")
	allow_origin: str = Field(default="*", validation_alias="ALLOW_ORIGIN")
	host: str = Field(default="0.0.0.0", validation_alias="HOST")
	port: int = Field(default=8000, validation_alias="PORT")

	# Free-tier quota on test generation
	rate_limit_max: int = Field(default=5, validation_alias="RATE_LIMIT_MAX")
	rate_limit_window_seconds: int = Field(default=24 * 60 * 60, validation_alias="RATE_LIMIT_WINDOW_SECONDS")

	max_writing_tasks: int = Field(default=5, validation_alias="MAX_WRITING_TASKS")
	max_audio_bytes: int = Field(default=30 * 1024 * 1024, validation_alias="MAX_AUDIO_BYTES")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
