"""Configuration management for Motion."""

import locale
from pathlib import Path
from typing import Optional, Literal
import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from loguru import logger


EnumerationMode = Literal["cloud", "directory"]

# Everything Config.load raises for a bad file
LOAD_ERRORS = (OSError, yaml.YAMLError, ValidationError)


class StorageConfig(BaseModel):
    container_identifier: str = "iCloud.de.plontsch.journey.shared"
    cloud_base: Path = Path("~/Library/Mobile Documents")
    local_root: Optional[Path] = None
    mode: EnumerationMode = "cloud"
    poll_interval_s: float = 2.0
    max_depth: int = 10

    @field_validator("poll_interval_s")
    @classmethod
    def validate_poll_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("poll_interval_s must be positive")
        return v

    @model_validator(mode="after")
    def local_root_implies_directory(self) -> "StorageConfig":
        if self.local_root is not None:
            self.mode = "directory"
        return self

    @property
    def walks_directory(self) -> bool:
        """True when sparks come from a local directory tree."""
        return self.mode == "directory" or self.local_root is not None

    def container_path(self) -> Path:
        """Local mirror of the cloud container (dots become tildes on disk)."""
        folder = self.container_identifier.replace(".", "~")
        return self.cloud_base.expanduser() / folder

    def watched_root(self) -> Path:
        """Directory whose files become sparks."""
        if self.local_root is not None:
            return self.local_root.expanduser()
        return self.container_path() / "Documents"


class EndpointConfig(BaseModel):
    base_url: str = "http://127.0.0.1:11434"
    model: str = "llama3"
    timeout_s: float = 120.0


class PromptConfig(BaseModel):
    instruction: str = "Create a short summary of the following content"
    extra_instruction: str = ""
    context: str = ""
    json_output: bool = False
    region: Optional[str] = None

    def resolved_region(self) -> Optional[str]:
        """Configured region, else the region part of the process locale."""
        if self.region:
            return self.region
        return detect_region()


class NotificationConfig(BaseModel):
    enabled: bool = False
    interval_s: float = 3600.0
    title: str = "Motion"


class Config(BaseModel):
    """Main configuration for the Motion daemon and CLI."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    endpoint: EndpointConfig = Field(default_factory=EndpointConfig)
    prompt: PromptConfig = Field(default_factory=PromptConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)

    @staticmethod
    def default_path() -> Path:
        return Path.home() / ".config" / "motion" / "config.yaml"

    @classmethod
    def find(cls) -> Optional[Path]:
        """Return the first existing config file, if any."""
        candidates = [
            Path("motion.yaml"),
            cls.default_path(),
        ]
        for candidate in candidates:
            if candidate.exists():
                return candidate
        return None

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from YAML, falling back to defaults."""
        if config_path is None:
            config_path = cls.find()
            if config_path is None:
                logger.debug("No config file found, using defaults")
                return cls()

        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return cls.model_validate(data)

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, default_flow_style=False)
        logger.info(f"Saved config to: {config_path}")

    def with_value(self, dotted_key: str, value: str) -> "Config":
        """
        Return a copy with one setting replaced, e.g. ``endpoint.model``.
        The value is coerced by pydantic validation.
        """
        section, _, field_name = dotted_key.partition(".")
        data = self.model_dump(mode="json")
        if section not in data or field_name not in data[section]:
            raise KeyError(dotted_key)
        data[section][field_name] = value
        return Config(**data)


def detect_region() -> Optional[str]:
    """Region code from the current locale, e.g. ``en_US`` -> ``US``."""
    try:
        lang = locale.getlocale()[0]
    except ValueError:
        return None
    if not lang or "_" not in lang:
        return None
    return lang.split("_", 1)[1].split(".", 1)[0] or None
