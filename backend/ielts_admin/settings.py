from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")
	gemini_timeout_seconds: float = Field(default=120.0, validation_alias="GEMINI_TIMEOUT_SECONDS")

	# OpenRouter fallback configuration (optional)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="x-ai/grok-4-fast:free", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://localhost", validation_alias="OPENROUTER_HTTP_REFERER")
	openrouter_title: str = Field(default="IELTS Admin Importer", validation_alias="OPENROUTER_TITLE")

	# OCR endpoint: POST multipart "file", responds {"text": "..."}
	ocr_endpoint_url: str | None = Field(default=None, validation_alias="OCR_ENDPOINT_URL")
	ocr_timeout_seconds: float = Field(default=60.0, validation_alias="OCR_TIMEOUT_SECONDS")

	# Completion endpoint: POST {"prompt", "text"}, responds {"output": "..."}; unset means call Gemini in-process
	completion_endpoint_url: str | None = Field(default=None, validation_alias="COMPLETION_ENDPOINT_URL")

	# AI output cache (per process)
	ai_cache_max_entries: int = Field(default=256, validation_alias="AI_CACHE_MAX_ENTRIES")

	# Import pipeline
	compensation_attempts: int = Field(default=3, validation_alias="COMPENSATION_ATTEMPTS")
	import_log_retention_days: int = Field(default=0, validation_alias="IMPORT_LOG_RETENTION_DAYS")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
