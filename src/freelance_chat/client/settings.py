"""Client configuration loaded from the environment."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Where the messaging client finds the REST API and the live channel."""

    api_url: str = Field(default="http://localhost:8000/api/v1", alias="CHAT_API_URL")
    ws_url: str = Field(default="ws://localhost:8000/ws", alias="CHAT_WS_URL")
    http_timeout_seconds: float = Field(default=10.0, alias="CHAT_HTTP_TIMEOUT")
    heartbeat_seconds: float = Field(default=30.0, alias="CHAT_WS_HEARTBEAT")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
