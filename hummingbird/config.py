"""Configuration management for Hummingbird."""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


# Paths
DEFAULT_CONFIG_PATH = Path("~/.hummingbird/config.yaml").expanduser()
DEFAULT_DB_PATH = Path("~/.hummingbird/threads.db").expanduser()
LOCAL_CONFIG_FILENAME = "hummingbird.yaml"


class AgentDefaultsConfig(BaseModel):
    """Default agent options used when the caller does not supply them."""

    provider: str = "openai"
    model: str = "gpt-4o-mini"
    system: str | None = None
    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None
    parallel_tools: Literal["auto", "force", "disable"] = "auto"


class PolicyConfig(BaseModel):
    """Permission policy configuration."""

    path: str = ""
    rules: list[dict[str, Any]] = Field(default_factory=list)


class ThreadsConfig(BaseModel):
    """Thread storage configuration."""

    storage: Literal["memory", "sqlite"] = "memory"
    path: str = str(DEFAULT_DB_PATH)
    user_id: str = "default-user"


class ToolsConfig(BaseModel):
    """Built-in tool configuration."""

    bash_timeout: float = 30.0
    fetch_timeout: float = 30.0
    fetch_max_chars: int = 100000


class RedactionConfig(BaseModel):
    """Secret redaction configuration."""

    enabled: bool = True
    replacement: str = "***REDACTED***"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["console", "json"] = "console"
    redact_secrets: bool = True


class Config(BaseSettings):
    """Main configuration for Hummingbird.

    ``HUMMINGBIRD_*`` environment variables (and ``.env``) take precedence
    over keyword arguments. YAML values reach the model as keyword
    arguments, so an env var overrides both the YAML file and an explicit
    ``Config(...)`` call; unset env vars leave those values in place.
    """

    agent: AgentDefaultsConfig = Field(default_factory=AgentDefaultsConfig)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    threads: ThreadsConfig = Field(default_factory=ThreadsConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    redaction: RedactionConfig = Field(default_factory=RedactionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="HUMMINGBIRD_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Env sources rank above init kwargs, which carry YAML and explicit values."""
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    @classmethod
    def resolve_default_config_path(cls) -> Path:
        """Resolve default config path with local-first precedence."""
        local_path = Path.cwd() / LOCAL_CONFIG_FILENAME
        if local_path.exists():
            return local_path
        return DEFAULT_CONFIG_PATH

    @classmethod
    def from_yaml(cls, path: Path | str | None = None) -> "Config":
        """Load configuration from YAML file."""
        config_path = Path(path).expanduser() if path else cls.resolve_default_config_path()

        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def load(cls) -> "Config":
        """Load configuration, preferring env vars over YAML."""
        return cls.from_yaml()

    def save(self, path: Path | str | None = None) -> None:
        """Save configuration to YAML file."""
        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(exclude_none=True)

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def permission_rules(self) -> list:
        """Resolve configured permission rules.

        Rules from ``policy.path`` come first, followed by inline
        ``policy.rules``; list order is evaluation order.

        Returns:
            List of PermissionRule
        """
        from hummingbird.policy.schemas import load_policy, load_policy_file

        rules = []
        if self.policy.path.strip():
            rules.extend(load_policy_file(self.policy.path))
        if self.policy.rules:
            rules.extend(load_policy({"version": "1.0", "rules": self.policy.rules}))
        return rules


# Global config instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
