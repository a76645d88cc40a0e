# voice_bridge/config.py
from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    APP_HOST: str = Field("0.0.0.0", description="Host to bind the app")
    APP_PORT: int = Field(8000, description="Port to run the app")
    ENV: str = Field("dev", description="Environment (dev|prod)")
    PUBLIC_BASE_URL: str = Field("http://localhost:8000", description="Externally reachable base URL of this service")

    # Storage
    DB_URL: str = Field("sqlite:///./data/voice_bridge.db", description="Database URL")

    # Call routing
    INBOUND_DIAL_TARGET: str = Field(
        "agent1.betsure@ug.sip.africastalking.com",
        description="SIP address inbound calls are forwarded to",
    )
    WEBRTC_CLIENT_MARKERS: str = Field(
        "agent_,.betsure,sip.africastalking.com",
        description="Comma-separated substrings identifying WebRTC/SIP client caller identities",
    )
    CALL_FLOWS_PATH: Optional[str] = Field(None, description="JSON file replacing the built-in call flow table")

    # Telephony provider
    AT_USERNAME: Optional[str] = Field(None, description="Africa's Talking username")
    AT_API_KEY: Optional[str] = Field(None, description="Africa's Talking API key")
    AT_PHONE_NUMBER: Optional[str] = Field(None, description="Virtual number outbound calls are placed from")
    AT_VOICE_URL: str = Field("https://voice.africastalking.com/call", description="Voice call request endpoint")
    AT_CAPABILITY_TOKEN_URL: str = Field(
        "https://webrtc.africastalking.com/capability-token/request",
        description="WebRTC capability token endpoint",
    )
    PROVIDER_TIMEOUT_SECONDS: float = Field(10.0, description="Timeout for provider HTTP requests")

    # Logging / misc
    LOG_LEVEL: str = Field("info", description="Logging level")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def webrtc_markers(self) -> List[str]:
        return [m.strip() for m in self.WEBRTC_CLIENT_MARKERS.split(",") if m.strip()]

    @property
    def voice_callback_url(self) -> str:
        return f"{self.PUBLIC_BASE_URL.rstrip('/')}/webhook/voice"


# Singleton settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Return a singleton Settings instance (loads from .env automatically).
    Use `get_settings()` instead of importing Settings() directly so other modules
    share the same instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings()  # loads from environment / .env
    return _settings
