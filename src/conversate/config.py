"""Application configuration using pydantic-settings."""

import functools
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from conversate.models.profile import ProficiencyLevel


def _find_project_root() -> Path:
    """Find project root by locating pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    return Path(__file__).resolve().parent.parent.parent


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads from settings.yaml."""

    def get_field_value(self, field_name: str) -> tuple[Any, str, bool]:
        """Not used - we implement __call__ instead."""
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        """Load settings from YAML file."""
        yaml_path = _find_project_root() / "config" / "settings.yaml"
        if not yaml_path.exists():
            return {}

        with open(yaml_path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        # Flatten nested structure to match Settings field names
        flattened = {}
        if 'server' in data:
            flattened['host'] = data['server'].get('host')
            flattened['port'] = data['server'].get('port')
        if 'storage' in data:
            flattened['storage_backend'] = data['storage'].get('backend')
            flattened['data_dir'] = data['storage'].get('data_dir')
        if 'completion' in data:
            completion = data['completion']
            flattened['completion_provider'] = completion.get('provider')
            flattened['completion_model'] = completion.get('model')
            flattened['completion_timeout_seconds'] = completion.get('timeout_seconds')
            flattened['max_history_messages'] = completion.get('max_history_messages')
        if 'defaults' in data:
            defaults = data['defaults']
            flattened['default_target_language'] = defaults.get('target_language')
            flattened['default_native_language'] = defaults.get('native_language')
            flattened['default_proficiency_level'] = defaults.get('proficiency_level')
            flattened['default_persona'] = defaults.get('persona')
            flattened['default_learning_goals'] = defaults.get('learning_goals')

        # Remove None values
        return {k: v for k, v in flattened.items() if v is not None}


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Completion provider
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    completion_provider: Literal["auto", "openai", "template"] = Field(default="auto")
    completion_model: str = Field(default="gpt-4o-mini")
    completion_timeout_seconds: float = Field(default=30.0)
    max_history_messages: int = Field(default=20)

    # Authentication (optional: None disables the shared-secret check)
    app_secret: str | None = Field(default=None)

    # Storage
    storage_backend: Literal["json", "memory"] = Field(default="json")
    data_dir: Path | None = Field(default=None)

    # Profile defaults
    default_target_language: str = Field(default="Spanish")
    default_native_language: str = Field(default="English")
    default_proficiency_level: ProficiencyLevel = Field(default=ProficiencyLevel.BEGINNER)
    default_persona: str = Field(default="maya")
    default_learning_goals: list[str] = Field(
        default_factory=lambda: ["General conversation practice"]
    )

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    allowed_origins: str = Field(default="http://localhost:3000,http://127.0.0.1:3000")

    # Paths
    project_root: Path = Field(default_factory=_find_project_root)

    @property
    def storage_dir(self) -> Path:
        d = self.data_dir or self.project_root / "data"
        d.mkdir(parents=True, exist_ok=True)
        return d

    @property
    def personas_path(self) -> Path:
        return self.project_root / "config" / "personas.yaml"

    @property
    def use_openai(self) -> bool:
        """Whether replies come from the OpenAI API instead of persona templates."""
        if self.completion_provider == "openai":
            return True
        if self.completion_provider == "template":
            return False
        return bool(self.openai_api_key)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customise settings sources to include YAML file.

        Priority order (highest to lowest):
        1. init_settings (arguments passed to Settings())
        2. env_settings (environment variables)
        3. dotenv_settings (.env file)
        4. YamlSettingsSource (settings.yaml)
        5. file_secret_settings
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlSettingsSource(settings_cls),
            file_secret_settings,
        )


@functools.lru_cache
def get_settings() -> Settings:
    """Get application settings singleton."""
    return Settings()


def load_personas(path: Path | None = None) -> dict[str, dict]:
    """Load persona definitions keyed by persona id from YAML."""
    personas_path = path or _find_project_root() / "config" / "personas.yaml"
    if not personas_path.exists():
        raise FileNotFoundError(f"Personas file not found: {personas_path}")
    with open(personas_path, encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    return data.get('personas', {})
