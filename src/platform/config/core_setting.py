from pathlib import Path
from typing import Annotated, List

import orjson
from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Marketplace Hold & Chat'
    VERSION: str = '0.1.0'
    DEBUG: bool = True  # Set to False in production

    # Logging
    LOG_DIR: Path = _PROJECT_ROOT / 'logs'
    LOG_JSON: bool = False  # one JSON object per line for the log collector

    # Security (tokens are issued by the identity service, we only verify them)
    SECRET_KEY: SecretStr = SecretStr('test_secret_key_change_in_production')
    ALGORITHM: str = 'HS256'
    AUTH_COOKIE_NAME: str = 'fastapiusersauth'

    # CORS
    # Comma separated or a JSON list; NoDecode hands the raw string to the validator
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = []

    @field_validator('BACKEND_CORS_ORIGINS', mode='before')
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str):
            v = v.strip()
            if v.startswith('['):
                return [str(origin) for origin in orjson.loads(v)]
            return [origin.strip() for origin in v.split(',') if origin.strip()]
        if isinstance(v, list):
            return v
        return []

    # Conversation
    SESSION_RETENTION_DAYS: int = 7
    TYPING_TIMEOUT_SECONDS: float = 5.0  # typing indicator auto-stops after this window
    LIVE_STREAM_BUFFER_SIZE: int = 100  # per-connection buffer before events are dropped

    # Background sweeper
    SWEEP_INTERVAL_SECONDS: float = 30.0
    SWEEP_ENABLED: bool = True

    # Store
    STORE_OP_TIMEOUT_SECONDS: float = 2.0

    # Transient failure retry at the API boundary
    TRANSIENT_RETRY_ATTEMPTS: int = 3
    TRANSIENT_RETRY_BASE_DELAY_SECONDS: float = 0.05

    # Catalog collaborator (empty = lookups disabled)
    CATALOG_BASE_URL: str = ''
    CATALOG_TIMEOUT_SECONDS: float = 3.0
    CATALOG_MAX_ATTEMPTS: int = 3


settings = Settings()  # type: ignore
