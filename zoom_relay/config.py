"""Global application settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


# Conversation window (turns kept per conversation key, oldest dropped first)
HISTORY_LIMIT = 20

# Zoom Team Chat message length limit
MAX_MESSAGE_LENGTH = 4096

# Fixed completion parameters
SYSTEM_PROMPT = (
    "You are a helpful AI assistant integrated with Zoom Team Chat. "
    "Provide concise, helpful responses to user questions and requests."
)
TEMPERATURE = 0.7
MAX_TOKENS = 1000

# Sent in place of an answer when the completion cannot be retrieved
APOLOGY_MESSAGE = (
    "Sorry, I hit an AI model error. I will be back shortly. "
    "(Check model access/config.)"
)

# Settings that must be present before the service accepts traffic
REQUIRED_SETTINGS = (
    "ZOOM_CLIENT_ID",
    "ZOOM_CLIENT_SECRET",
    "ZOOM_BOT_JID",
    "ZOOM_WEBHOOK_SECRET_TOKEN",
    "ANTHROPIC_API_KEY",
)


class Settings(BaseSettings):
    """Application configuration with environment variable support."""

    # Service Info
    APP_NAME: str = "Zoom Claude Relay"
    SERVICE_NAME: str = "zoom-relay"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 4000
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Zoom chatbot credentials
    ZOOM_CLIENT_ID: str = ""
    ZOOM_CLIENT_SECRET: str = ""
    ZOOM_BOT_JID: str = ""
    ZOOM_ACCOUNT_ID: str = ""
    ZOOM_WEBHOOK_SECRET_TOKEN: str = ""

    # Zoom endpoints
    ZOOM_API_BASE_URL: str = "https://api.zoom.us/v2"
    ZOOM_OAUTH_TOKEN_URL: str = "https://zoom.us/oauth/token"

    # Anthropic
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_BASE_URL: str = "https://api.anthropic.com"
    ANTHROPIC_MODEL: str = "claude-3-5-sonnet-latest"
    ANTHROPIC_VERSION: str = "2023-06-01"
    LLM_STREAMING: bool = True

    # Outbound timeouts (seconds)
    HTTP_TIMEOUT_SECONDS: float = 15.0
    LLM_TIMEOUT_SECONDS: float = 120.0
    LLM_DEADLINE_SECONDS: float = 300.0

    # Chatbot token cache
    TOKEN_CACHE_ENABLED: bool = True
    TOKEN_REFRESH_MARGIN_SECONDS: int = 60

    # Webhook replay window, 0 disables the check
    WEBHOOK_MAX_AGE_SECONDS: int = 300

    # Management endpoints (/api/*), unset means unauthenticated
    INTERNAL_API_KEY: str = ""

    # Headline shown on every chatbot card
    CHAT_CARD_HEADLINE: str = "AI Assistant"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    def get_missing_settings(self) -> List[str]:
        """Return the names of required settings that are empty."""
        return [name for name in REQUIRED_SETTINGS if not getattr(self, name)]


settings = Settings()
