from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	# Vision-capable model used for screenshot scoring
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	# Optional: model override for the text-only refinement call
	gemini_model_refine: str | None = Field(default=None, validation_alias="GEMINI_MODEL_REFINE")
	# Vertex configuration
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")

	# OpenRouter fallback configuration (optional, text prompts only)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="x-ai/grok-4-fast:free", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://localhost", validation_alias="OPENROUTER_HTTP_REFERER")
	openrouter_title: str = Field(default="Learning Science Audit", validation_alias="OPENROUTER_TITLE")

	oracle_timeout_seconds: float = Field(default=60.0, validation_alias="ORACLE_TIMEOUT_SECONDS")

	# Upload limits
	max_images_per_section: int = Field(default=10, validation_alias="MAX_IMAGES_PER_SECTION")
	max_image_bytes: int = Field(default=5 * 1024 * 1024, validation_alias="MAX_IMAGE_BYTES")

	# Shared reports
	report_id_length: int = Field(default=10, validation_alias="REPORT_ID_LENGTH")
	public_base_url: str = Field(default="http://localhost:8000", validation_alias="PUBLIC_BASE_URL")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
