from functools import lru_cache
from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

PROOF_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_GATEWAY_URL = "https://ai.gateway.lovable.dev/v1/chat/completions"

CsvList = Annotated[list[str], NoDecode]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        validate_by_name=True,
        populate_by_name=True,
    )
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("ENVIRONMENT", "ENV"),
    )

    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str = ""
    supabase_jwt_audience: str = "authenticated"
    database_url: str = ""

    proof_bucket: str = "task-proofs"
    proof_max_bytes: int = PROOF_MAX_BYTES

    ai_vision_provider: str = "gateway"
    ai_vision_model: str = "google/gemini-3-pro-preview"
    ai_allowed_providers: CsvList = Field(default_factory=lambda: ["gateway", "openai", "mock"])
    ai_gateway_url: str = DEFAULT_GATEWAY_URL
    ai_gateway_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("AI_GATEWAY_API_KEY", "LOVABLE_API_KEY"),
    )
    openai_api_key: str = ""
    ai_temperature: float = 0.2
    ai_max_tokens: int = 1024
    ai_vision_timeout_seconds: float = 60.0
    ai_debug_store_raw: bool = False

    docs_enabled: bool = True
    openapi_enabled: bool = True
    expose_error_details: bool = False

    security_headers_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("SECURITY_HEADERS_ENABLED", "SECURE_HEADERS_ENABLED"),
    )

    cors_allow_origins: CsvList = Field(default_factory=lambda: ["*"])
    cors_allow_methods: CsvList = Field(default_factory=lambda: ["GET", "POST", "OPTIONS"])
    cors_allow_headers: CsvList = Field(default_factory=lambda: [
        "Authorization",
        "X-Client-Info",
        "Apikey",
        "Content-Type",
    ])

    # Repeated submissions for the same task are unlimited unless this is switched on.
    rate_limit_verify_enabled: bool = False
    rate_limit_verify_per_min: int = 10

    @field_validator(
        "ai_allowed_providers",
        "cors_allow_origins",
        "cors_allow_methods",
        "cors_allow_headers",
        mode="before",
    )
    @classmethod
    def _split_csv(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            if value.strip() == "":
                return []
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("ai_allowed_providers", mode="after")
    @classmethod
    def _lower_providers(cls, value: list[str]) -> list[str]:
        return [item.lower() for item in value]

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"production", "prod"}

    def validate_required_config(self) -> list[str]:
        """Return the configuration problems that would break a verification call."""
        problems: list[str] = []
        if not self.supabase_url:
            problems.append("SUPABASE_URL is not set")
        if not self.supabase_service_role_key and not self.supabase_key:
            problems.append("SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_KEY) is not set")
        if not self.supabase_jwt_secret and not self.supabase_url:
            problems.append("SUPABASE_JWT_SECRET is not set and no JWKS endpoint is available")
        if not self.database_url:
            problems.append("DATABASE_URL is not set")
        provider = self.ai_vision_provider.lower().strip()
        if provider == "gateway" and not self.ai_gateway_api_key:
            problems.append("AI_GATEWAY_API_KEY is not set for the gateway vision provider")
        if provider == "openai" and not self.openai_api_key:
            problems.append("OPENAI_API_KEY is not set for the openai vision provider")
        return problems


@lru_cache
def get_settings() -> Settings:
    return Settings()
