"""
Settings Configuration
Pydantic-validated settings for the backfill run, read from the environment
and an optional ``config/.env`` file.
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from core import BackfillConfig
from utils.exceptions import ConfigurationError


class StorageSettings(BaseSettings):
    """Object storage namespace"""
    bucket: Optional[str] = Field(default=None, description="Bucket holding the event bundles")
    region: str = Field(default="us-east-1", description="AWS region of the bucket")
    bundle_folder: str = Field(default="to", description="Folder under the explorer prefix that holds bundles")
    page_size: int = Field(default=1000, description="Keys requested per listing page")

    class Config:
        env_prefix = "STORAGE_"


class ExplorerSettings(BaseSettings):
    """Bundle owner identity"""
    id: Optional[str] = Field(default=None, description="Explorer id, first segment of every bundle key")
    name: Optional[str] = Field(default=None, description="Display name used in prompts")
    default_sender: str = Field(default="Granddad", description="Sender written when metadata has none")

    class Config:
        env_prefix = "EXPLORER_"


class GeminiSettings(BaseSettings):
    """Caption generation service"""
    api_key: Optional[str] = Field(default=None, description="Google Gemini API Key")
    model_name: str = Field(default="gemini-2.5-flash-lite", description="Multimodal model name")
    pacing_seconds: float = Field(default=5.0, description="Delay before every generation attempt")
    backoff_seconds: float = Field(default=60.0, description="Delay after a rate-limited attempt")
    max_attempts: int = Field(default=3, description="Total attempts per bundle")

    class Config:
        env_prefix = "GEMINI_"


class OpenAISettings(BaseSettings):
    """Speech synthesis service"""
    api_key: Optional[str] = Field(default=None, description="OpenAI API Key")
    tts_model: str = Field(default="tts-1", description="Speech model")
    tts_voice: str = Field(default="alloy", description="Default voice")
    timeout: float = Field(default=60.0, description="Request timeout (seconds)")
    pacing_seconds: float = Field(default=1.0, description="Delay after each uploaded audio artifact")

    class Config:
        env_prefix = "OPENAI_"


class LogSettings(BaseSettings):
    """Logging"""
    level: str = Field(default="INFO", description="Log level name")
    file: Optional[str] = Field(default=None, description="Log file name under logs/")

    class Config:
        env_prefix = "LOG_"


class Settings(BaseSettings):
    """Aggregated settings"""

    storage: StorageSettings = Field(default_factory=StorageSettings)
    explorer: ExplorerSettings = Field(default_factory=ExplorerSettings)
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    log: LogSettings = Field(default_factory=LogSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """Load settings, first exporting the given .env file (default ``config/.env``)."""
        if env_path is None:
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            storage=StorageSettings(),
            explorer=ExplorerSettings(),
            gemini=GeminiSettings(),
            openai=OpenAISettings(),
            log=LogSettings(),
        )

    def missing_required(self) -> List[str]:
        required = {
            "STORAGE_BUCKET": self.storage.bucket,
            "EXPLORER_ID": self.explorer.id,
            "GEMINI_API_KEY": self.gemini.api_key,
            "OPENAI_API_KEY": self.openai.api_key,
        }
        return [name for name, value in required.items() if not str(value or "").strip()]

    def validate_required(self, names: Optional[List[str]] = None) -> None:
        """Raise ConfigurationError naming every missing required value.

        ``names`` narrows the check for commands that only need part of the stack.
        """
        missing = self.missing_required()
        if names is not None:
            missing = [name for name in missing if name in names]
        if missing:
            raise ConfigurationError(
                f"missing required configuration: {', '.join(missing)}",
                missing=missing,
            )

    def to_backfill_config(self) -> BackfillConfig:
        self.validate_required(["STORAGE_BUCKET", "EXPLORER_ID"])
        return BackfillConfig(
            bucket=self.storage.bucket,
            explorer_id=self.explorer.id,
            explorer_name=self.explorer.name or "",
            bundle_folder=self.storage.bundle_folder,
            default_sender=self.explorer.default_sender,
            speech_pacing_seconds=self.openai.pacing_seconds,
        )


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings singleton"""
    return Settings.load_from_env_file()
