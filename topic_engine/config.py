"""
Configuration management for the Topic Discovery and Stance-Aggregation Engine.
Supports OpenAI-compatible (cloud), Ollama (local) and mock LLM providers.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # LLM Configuration
    # Provider priority: OpenAI-compatible → Ollama
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    openai_base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")

    use_ollama: bool = Field(default=False, alias="USE_OLLAMA")
    ollama_model: str = Field(default="qwen2.5:3b", alias="OLLAMA_MODEL")
    ollama_base_url: str = Field(default="http://localhost:11434", alias="OLLAMA_BASE_URL")

    # Per-request timeout for the completion service. A timed-out call falls
    # back to the documented default (neutral stance / fallback summary).
    llm_timeout_seconds: float = Field(default=20.0, alias="LLM_TIMEOUT_SECONDS")
    stance_max_tokens: int = Field(default=10, alias="STANCE_MAX_TOKENS")
    stance_temperature: float = Field(default=0.3, alias="STANCE_TEMPERATURE")
    summary_max_tokens: int = Field(default=400, alias="SUMMARY_MAX_TOKENS")
    summary_temperature: float = Field(default=0.7, alias="SUMMARY_TEMPERATURE")
    summary_sample_per_side: int = Field(default=3, alias="SUMMARY_SAMPLE_PER_SIDE")

    # ── Candidate window ──
    # 168h = 7 days for stance aggregation, 24h for discovery
    timeframe_hours: int = Field(default=168, alias="TIMEFRAME_HOURS")
    discovery_timeframe_hours: int = Field(default=24, alias="DISCOVERY_TIMEFRAME_HOURS")
    max_candidates: int = Field(default=1000, alias="MAX_CANDIDATES")

    # ── Clustering ──
    # 0.70 = tight topical clusters (aggregation)
    # 0.60 = wide clusters that deliberately keep opposing viewpoints together (discovery)
    similarity_threshold: float = Field(default=0.70, alias="SIMILARITY_THRESHOLD")
    discovery_similarity_threshold: float = Field(default=0.60, alias="DISCOVERY_SIMILARITY_THRESHOLD")
    min_posts_per_topic: int = Field(default=5, alias="MIN_POSTS_PER_TOPIC")
    max_clusters: int = Field(default=20, alias="MAX_CLUSTERS")
    max_topics: int = Field(default=15, alias="MAX_TOPICS")

    # ── Stance splitting ──
    # "drop": clusters without both a support and an oppose member are not emitted.
    # "single_vector": such clusters are emitted as non-comparative topics.
    single_stance_policy: str = Field(default="drop", alias="SINGLE_STANCE_POLICY")
    stance_batch_size: int = Field(default=5, alias="STANCE_BATCH_SIZE")
    stance_batch_pause_seconds: float = Field(default=0.1, alias="STANCE_BATCH_PAUSE_SECONDS")

    # ── Result cache ──
    cache_ttl_minutes: float = Field(default=15.0, alias="CACHE_TTL_MINUTES")
    # Decimal places kept when bucketing lat/lng callers (1 ≈ 11km)
    cache_coordinate_precision: int = Field(default=1, alias="CACHE_COORDINATE_PRECISION")

    # ── Map display rotation ──
    map_topic_count: int = Field(default=3, alias="MAP_TOPIC_COUNT")
    map_rotation_seconds: int = Field(default=15, alias="MAP_ROTATION_SECONDS")

    # ── Navigation mode ──
    # Slightly below the clustering threshold so the filtered view reaches
    # beyond the original cluster members.
    navigation_similarity_threshold: float = Field(default=0.65, alias="NAVIGATION_SIMILARITY_THRESHOLD")
    navigation_feed_limit: int = Field(default=30, alias="NAVIGATION_FEED_LIMIT")

    # Content store (ChromaDB) used as embedding source + similarity index
    content_store_path: str = Field(default="./data/content_store", alias="CONTENT_STORE_PATH")

    mock_mode: bool = Field(default=False, alias="MOCK_MODE")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_ttl_minutes * 60.0

    def get_llm_config(self) -> dict:
        """Get LLM configuration based on settings.

        Priority: OpenAI-compatible → Ollama → mock
        """
        if self.mock_mode:
            return {"provider": "mock"}
        if self.openai_api_key:
            return {
                "provider": "openai",
                "api_key": self.openai_api_key,
                "model": self.openai_model,
                "base_url": self.openai_base_url,
            }
        elif self.use_ollama:
            return {
                "provider": "ollama",
                "model": self.ollama_model,
                "base_url": self.ollama_base_url,
            }
        return {"provider": "none"}


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
