"""Validated settings for a DashScope recognition session."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..errors import ConfigurationError

DEFAULT_URL = "wss://dashscope.aliyuncs.com/api-ws/v1/inference"
DEFAULT_MODEL = "paraformer-realtime-8k-v2"

# The 8k Paraformer models only accept narrowband audio.
SUPPORTED_SAMPLE_RATES = (8000,)
SUPPORTED_FORMATS = ("pcm",)


@dataclass
class RecognizerSettings:
    """Everything a SpeechRecognizer needs to open and run a task.

    Validation runs on construction so a bad value never reaches the network.
    """
    api_key: str
    url: str = DEFAULT_URL
    model: str = DEFAULT_MODEL
    sample_rate: int = 8000
    audio_format: str = "pcm"
    language_hints: List[str] = field(default_factory=lambda: ["zh"])
    data_inspection: bool = True
    workspace: Optional[str] = None
    connect_timeout: float = 10.0
    heartbeat: Optional[float] = 30.0
    auto_reconnect: bool = True
    max_reconnect_attempts: int = 3
    reconnect_delay: float = 1.0

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Raise ConfigurationError if any setting is unusable."""
        if not self.api_key or not str(self.api_key).strip():
            raise ConfigurationError("DashScope API key is not configured")
        if self.sample_rate not in SUPPORTED_SAMPLE_RATES:
            raise ConfigurationError(
                f"Unsupported sample rate {self.sample_rate} Hz; "
                f"{self.model} accepts {', '.join(str(r) for r in SUPPORTED_SAMPLE_RATES)} Hz")
        if self.audio_format not in SUPPORTED_FORMATS:
            raise ConfigurationError(f"Unsupported audio format: {self.audio_format}")
        if not self.model:
            raise ConfigurationError("Recognition model is not configured")
        if not self.language_hints:
            raise ConfigurationError("At least one language hint is required")
        if not self.url.startswith(("ws://", "wss://")):
            raise ConfigurationError(f"Service URL must be a ws:// or wss:// URL: {self.url}")
        if self.connect_timeout <= 0:
            raise ConfigurationError("connect_timeout must be positive")
        if self.max_reconnect_attempts < 0 or self.reconnect_delay < 0:
            raise ConfigurationError("Reconnect attempts and delay must not be negative")

    def connection_headers(self) -> Dict[str, str]:
        """Headers sent with the WebSocket upgrade request."""
        headers = {
            "Authorization": f"bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.data_inspection:
            headers["X-DashScope-DataInspection"] = "enable"
        if self.workspace:
            headers["X-DashScope-WorkSpace"] = self.workspace
        return headers
