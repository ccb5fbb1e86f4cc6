from pathlib import Path

from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    SERVER_URL: str = "http://127.0.0.1:3000/api"
    HEALTH_URL: str = "http://127.0.0.1:3000/health"
    STATE_FILE: Path = Path.home() / ".trove" / "state.json"
    REQUEST_TIMEOUT: float = 10.0
    PING_TIMEOUT: float = 5.0
    WATCH_INTERVAL: float = 15.0

    class Config:
        env_prefix = "TROVE_"
        env_file = ".env"
        env_file_encoding = 'utf-8'
        extra = "ignore"
