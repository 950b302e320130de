"""
Pydantic settings for the Mindful AI backend.
Centralizes all environment variable configuration with validation.
"""
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Django
    django_secret_key: str = Field(
        default="django-insecure-dev-key-change-in-production",
        description="Django secret key",
    )
    django_debug: bool = Field(default=True, description="Debug mode")
    django_allowed_hosts: str = Field(
        default="localhost,127.0.0.1,testserver",
        description="Comma-separated allowed hosts",
    )
    log_level: str = Field(default="INFO", description="Root log level")

    # Supabase
    supabase_url: Optional[str] = Field(default=None, description="Supabase URL")
    supabase_anon_key: Optional[str] = Field(default=None, description="Supabase anon key")
    supabase_service_role_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key, used for admin and table access",
    )

    # Gemini (Google AI)
    google_api_key: Optional[str] = Field(default=None, description="Google API key for Gemini")
    chat_model: str = Field(default="gemini-2.0-flash", description="Gemini chat model name")
    chat_temperature: float = Field(default=0.4, description="Sampling temperature")
    max_response_tokens: int = Field(default=1024, description="Max output tokens per answer")
    embedding_model: str = Field(
        default="models/text-embedding-004",
        description="Gemini embedding model name",
    )
    embedding_dimensions: int = Field(default=768, description="Embedding vector size")

    # Vector store
    vector_table_name: str = Field(default="documents", description="pgvector table")
    vector_query_name: str = Field(default="match_documents", description="Similarity RPC")
    similarity_search_results: int = Field(default=5, description="Chunks retrieved per question")

    # Document ingestion
    chunk_size: int = Field(default=1000, description="Max characters per chunk")
    chunk_overlap: int = Field(default=200, description="Characters shared between chunks")
    max_file_size: int = Field(default=10 * 1024 * 1024, description="Upload limit in bytes")
    allowed_file_types: str = Field(
        default=".pdf,.docx,.txt,.md,.html",
        description="Comma-separated upload extensions",
    )

    # Meta / WhatsApp Business
    meta_app_id: Optional[str] = Field(default=None, description="Meta app id")
    meta_app_secret: Optional[str] = Field(default=None, description="Meta app secret")
    meta_app_config_id: Optional[str] = Field(default=None, description="Embedded signup config id")
    meta_redirect_uri: Optional[str] = Field(default=None, description="OAuth redirect URI")
    meta_api_version: str = Field(default="v18.0", description="Graph API version")
    meta_webhook_url: Optional[str] = Field(default=None, description="Public webhook URL")
    meta_webhook_verify_token: Optional[str] = Field(
        default=None,
        description="Token Meta echoes back when verifying the webhook",
    )

    # Frontend and admin bootstrap
    app_url: str = Field(default="http://localhost:3000", description="Frontend base URL")
    admin_secret_key: Optional[str] = Field(
        default=None,
        description="Shared secret required to create admin accounts",
    )

    # CORS
    cors_allowed_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        description="Comma-separated CORS allowed origins",
    )

    @property
    def allowed_hosts_list(self) -> List[str]:
        """Parse allowed hosts into a list."""
        return [h.strip() for h in self.django_allowed_hosts.split(",") if h.strip()]

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS allowed origins into a list."""
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]

    @property
    def allowed_file_types_list(self) -> List[str]:
        """Parse allowed upload extensions into a lowercase list."""
        return [e.strip().lower() for e in self.allowed_file_types.split(",") if e.strip()]

    @property
    def graph_api_url(self) -> str:
        return f"https://graph.facebook.com/{self.meta_api_version}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
