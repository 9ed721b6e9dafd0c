# config.py
"""Configuration settings for the ExamForge generation engine.
Uses Pydantic BaseSettings for automatic environment variable loading.
"""

from __future__ import annotations

import os

import structlog
from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

logger = structlog.get_logger()


class ExamForgeSettings(BaseSettings):
    """Full configuration for the ExamForge engine."""

    # API and Model Configuration
    OLLAMA_EMBED_URL: str = "http://127.0.0.1:11434"
    OPENAI_API_BASE: str = "http://127.0.0.1:8080/v1"
    OPENAI_API_KEY: str = "sk-local"

    EMBEDDING_MODEL: str = "nomic-embed-text:latest"
    EXPECTED_EMBEDDING_DIM: int = 768
    EMBEDDING_DTYPE: str = "float32"

    # Neo4j Connection Settings (semantic cache store)
    NEO4J_URI: str = "bolt://localhost:7687"
    NEO4J_USER: str = "neo4j"
    NEO4J_PASSWORD: str = "examforge_password"
    NEO4J_DATABASE: str | None = "neo4j"
    NEO4J_CACHE_NODE_LABEL: str = "CacheEntry"

    # Base Model Definitions
    FLASH_MODEL: str = "gemini-2.5-flash"
    PRO_MODEL: str = "gemini-2.5-pro"

    # Task label -> model routing
    TASK_MODEL_MAP: dict[str, str] = {
        "chat": "flash",
        "notes": "flash",
        "hint": "flash",
        "quiz_gen": "flash",
        "ppt_gen": "flash",
        "qpaper_gen": "flash",
        "refine": "pro",
    }
    DEFAULT_MODEL: str = "flash"
    FALLBACK_GENERATION_MODEL: str | None = None

    # Temperature Settings
    TEMPERATURE_DEFAULT: float = 0.7
    TEMPERATURE_PLANNING: float = 0.6
    TEMPERATURE_CONTENT: float = 0.7
    TEMPERATURE_QUIZ: float = 0.7
    TEMPERATURE_REFINE: float = 0.5
    LLM_TOP_P: float = 0.95

    # LLM Call Settings & Fallbacks
    LLM_RETRY_ATTEMPTS: int = 3
    LLM_RETRY_DELAY_SECONDS: float = 3.0
    HTTPX_TIMEOUT: float = 600.0
    TIKTOKEN_DEFAULT_ENCODING: str = "cl100k_base"
    FALLBACK_CHARS_PER_TOKEN: float = 4.0
    MAX_GENERATION_TOKENS: int = 8192
    DECK_MAX_TOKENS: int = 8192
    MAX_SOURCE_TOKENS: int = 24000
    MAX_REFINE_CHARS: int = 15000

    # Concurrency and Rate Limiting
    MAX_CONCURRENT_LLM_CALLS: int = 4

    # Caching
    CACHE_BACKEND: str = "neo4j"
    CACHE_SIMILARITY_THRESHOLD: float = 0.78
    EMBEDDING_CACHE_SIZE: int = 128
    TOKENIZER_CACHE_SIZE: int = 10

    # Staged Generation
    GENERATION_BATCH_SIZE: int = 8
    GENERATION_BATCH_DELAY_SECONDS: float = 1.0
    MAX_PLANNED_UNITS: int = 60
    DEGRADED_ARTIFACT_RATIO: float = 0.5
    DECK_TARGET_RANGE_MODULE: str = "20-25"
    DECK_TARGET_RANGE_TOPIC: str = "12-15"

    # Tutor chat
    CHAT_HISTORY_TURNS: int = 6
    SUGGESTED_PROMPT_COUNT: int = 4

    # Pricing (per 1M tokens, USD) and currency conversion
    INPUT_COST_PER_1M_USD: dict[str, float] = {"flash": 0.15, "pro": 1.25}
    OUTPUT_COST_PER_1M_USD: dict[str, float] = {"flash": 0.6, "pro": 10.0}
    USD_TO_INR: float = 83.33

    # Logging & UI
    LOG_LEVEL_STR: str = Field("INFO", alias="AGENT_LOG_LEVEL")
    LOG_FORMAT: str = (
        "%(asctime)s - %(levelname)s - [%(name)s:%(funcName)s:%(lineno)d] - %(message)s"
    )
    LOG_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"
    LOG_DIR: str = "logs"
    LOG_FILE: str | None = "examforge.log"
    ENABLE_RICH_PROGRESS: bool = True

    @field_validator("OPENAI_API_KEY")
    @classmethod
    def _reject_placeholder_key(cls, value: str) -> str:
        if value.strip().lower() in {"", "nope", "changeme"}:
            raise ValueError("OPENAI_API_KEY must be set to a real key")
        return value

    @field_validator("CACHE_SIMILARITY_THRESHOLD")
    @classmethod
    def _threshold_in_range(cls, value: float) -> float:
        if not -1.0 <= value <= 1.0:
            raise ValueError("CACHE_SIMILARITY_THRESHOLD must be within [-1, 1]")
        return value

    @field_validator("GENERATION_BATCH_SIZE", "MAX_PLANNED_UNITS")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("value must be at least 1")
        return value

    @field_validator("CACHE_BACKEND")
    @classmethod
    def _known_backend(cls, value: str) -> str:
        backend = value.strip().lower()
        if backend not in {"neo4j", "memory"}:
            raise ValueError(f"Unknown CACHE_BACKEND '{value}'")
        return backend

    @model_validator(mode="after")
    def warn_default_neo4j_password(self) -> ExamForgeSettings:
        if self.CACHE_BACKEND == "neo4j" and self.NEO4J_PASSWORD == "examforge_password":
            logger.warning(
                "NEO4J_PASSWORD is using the default value. Set it in the environment."
            )
        return self

    def model_for_task(self, task_label: str) -> str:
        """Resolve a task label to a concrete provider model name."""
        model_key = self.TASK_MODEL_MAP.get(task_label, self.DEFAULT_MODEL)
        return self.PRO_MODEL if model_key == "pro" else self.FLASH_MODEL

    def model_key_for_name(self, model_name: str) -> str:
        """Return the pricing key (``flash``/``pro``) for a model name."""
        return "pro" if model_name == self.PRO_MODEL else "flash"

    model_config = SettingsConfigDict(
        env_prefix="", env_file=".env", populate_by_name=True
    )


settings = ExamForgeSettings()

LOG_DIR_PATH = settings.LOG_DIR
os.makedirs(LOG_DIR_PATH, exist_ok=True)
