"""Engine configuration and per-file-type tuning profiles."""

import json
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError


class EngineConfig(BaseModel, frozen=True):
    """Tunables for anchor creation and relocation.

    Several configurations can coexist (e.g., one per file type); each
    AnchorEngine is bound to exactly one.
    """

    context_lines: int = Field(default=2, ge=1, description="Lines stored on each side of a span")
    similarity_threshold: float = Field(
        default=0.6, ge=0.0, le=1.0, description="Minimum context score to accept a candidate"
    )
    search_radius: int = Field(default=20, ge=0, description="Lines scanned around the original line")


DEFAULT_CONFIG = EngineConfig()


class EngineSettings(BaseModel):
    """Contents of a config file: a default plus suffix-keyed profiles.

    Example::

        {
          "default": {"similarity_threshold": 0.6},
          "profiles": {".md": {"context_lines": 3}, ".py": {"search_radius": 50}}
        }
    """

    default: EngineConfig = Field(default_factory=EngineConfig)
    profiles: dict[str, EngineConfig] = Field(default_factory=dict)

    def for_file(self, path: Path) -> EngineConfig:
        """Return the profile matching the file's suffix, or the default."""
        suffix = path.suffix.lower()
        for key, profile in self.profiles.items():
            if key.lower() == suffix:
                return profile
        return self.default


def load_config(path: Path) -> EngineSettings:
    """Read engine settings from a JSON config file.

    Profile entries only need to name the values they override; unspecified
    values are taken from the file's ``default`` section.

    Args:
        path: Path to the JSON config file

    Returns:
        Validated EngineSettings

    Raises:
        FileNotFoundError: If the config file does not exist
        ValueError: If the file is not valid JSON or fails schema validation
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")

    try:
        default = EngineConfig.model_validate(data.get("default", {}))
        profiles = {
            suffix: default.model_copy(update=EngineConfig.model_validate(overrides).model_dump(exclude_unset=True))
            for suffix, overrides in data.get("profiles", {}).items()
        }
    except (ValidationError, AttributeError, TypeError) as e:
        raise ValueError(f"Config file {path} failed schema validation: {e}") from e

    return EngineSettings(default=default, profiles=profiles)
