"""Configuration management using Pydantic settings."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful Microsoft 365 assistant. You help the user keep track of "
    "their meetings, emails and documents. Be concise and direct."
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="GRAPH_ASSISTANT_",
        extra="ignore",
    )

    # Microsoft Graph
    graph_base_url: str = "https://graph.microsoft.com/v1.0"
    graph_resource: str = "https://graph.microsoft.com"
    auth_mode: Literal["azure_cli", "token"] = "azure_cli"
    access_token: str = ""
    request_timeout_seconds: float = 30.0

    # Retry
    max_retries: int = 3
    retry_delay_seconds: float = 1.0

    # Logging
    log_level: str = "WARNING"
    log_file: str | None = None

    # Conversation
    data_dir: str = "./data"
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    max_input_length: int = 4000
    default_max_results: int = 10

    # Chat backend
    chat_backend: Literal["simulated", "endpoint", "azure_openai"] = "simulated"
    chat_endpoint: str = ""

    # Azure OpenAI
    azure_openai_endpoint: str = ""
    azure_openai_api_key: str = ""
    azure_openai_deployment: str = "gpt-4"

    # Telemetry
    telemetry_enabled: bool = False
    telemetry_endpoint: str = ""

    @property
    def sessions_dir(self) -> str:
        """Directory holding saved conversation snapshots."""
        return f"{self.data_dir.rstrip('/')}/sessions"

    @property
    def usage_file(self) -> str:
        """Usage counters carried across runs."""
        return f"{self.data_dir.rstrip('/')}/usage.json"

    @property
    def telemetry_active(self) -> bool:
        """Telemetry only runs when opted in and an endpoint is configured."""
        return self.telemetry_enabled and bool(self.telemetry_endpoint)
