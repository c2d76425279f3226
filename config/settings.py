# DEPENDENCIES
from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application-wide settings: primary configuration source (environment and .env)
    """
    # Application Info
    APP_NAME                : str           = "Playbook Clause Engine"
    APP_VERSION             : str           = "1.0.0"
    API_PREFIX              : str           = "/api/v1"

    # Server Configuration
    HOST                    : str           = "0.0.0.0"
    PORT                    : int           = 8000
    RELOAD                  : bool          = False
    WORKERS                 : int           = 1

    # CORS Settings
    CORS_ORIGINS            : list          = ["http://localhost:3000", "http://localhost:8000", "http://127.0.0.1:8000"]
    CORS_ALLOW_CREDENTIALS  : bool          = True
    CORS_ALLOW_METHODS      : list          = ["*"]
    CORS_ALLOW_HEADERS      : list          = ["*"]

    # Persistence
    DATABASE_URL            : str           = "sqlite:///./clause_engine.db"
    DATABASE_ECHO           : bool          = False
    SEED_PLAYBOOK_ON_START  : bool          = True

    # Embedding Settings
    EMBEDDING_BACKEND       : str           = "sentence-transformers"   # or "hashing"
    EMBEDDING_TIMEOUT       : float         = 30.0                      # seconds per model call
    USE_GPU                 : bool          = True

    # Text Generation Settings
    ENABLE_TEXT_GENERATION  : bool          = True
    GENERATION_PROVIDER     : str           = "ollama"
    GENERATION_TIMEOUT      : float         = 20.0
    OLLAMA_BASE_URL         : str           = "http://localhost:11434"
    OLLAMA_MODEL            : str           = "llama3:8b"
    OLLAMA_TIMEOUT          : int           = 60
    OLLAMA_TEMPERATURE      : float         = 0.2
    OPENAI_API_KEY          : Optional[str] = None
    OPENAI_MODEL            : str           = "gpt-4o-mini"

    # Analysis Limits
    MIN_DOCUMENT_LENGTH     : int           = 30       # characters, after stripping
    MAX_DOCUMENT_LENGTH     : int           = 500000
    MAX_PARALLEL_CLAUSES    : int           = 4

    # Learning Settings
    FEEDBACK_BATCH_SIZE     : int           = 50
    LEARNING_RATE           : float         = 0.01

    # Logging Settings
    LOG_LEVEL               : str           = "INFO"
    LOG_DIR                 : Path          = Path("logs")

    # Cache Settings
    ENABLE_CACHE            : bool          = True
    CACHE_DIR               : Path          = Path("cache")
    EMBEDDING_CACHE_TTL     : int           = 24 * 3600


    class Config:
        env_file          = ".env"
        env_file_encoding = "utf-8"
        case_sensitive    = True


    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Ensure directories exist
        self.CACHE_DIR.mkdir(parents = True, exist_ok = True)
        self.LOG_DIR.mkdir(parents = True, exist_ok = True)


    @property
    def embedding_cache_dir(self) -> Path:
        return self.CACHE_DIR / "embeddings"


# Global settings instance
settings = Settings()
