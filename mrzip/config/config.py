"""Configuration management for mrzip."""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from ..core.types import ScriptOptions
from ..io.directories import get_default_config_path
from ..io.logger import get_logger
from .schema import MrzipConfig

logger = get_logger("config")


EXAMPLE_CONFIG = """# mrzip configuration file
# Edit this file to customize behavior

downloads:
  cors_proxy: "https://corsproxy.io/?"  # Used with --cors-proxy
  timeout: 60              # Seconds per request
  max_retries: 3           # Attempts per URL before a file is skipped
  backoff_base_delay: 1.0
  backoff_max_delay: 30.0
  mirror_fallback: false   # Try the other download URLs of a file

scripts:
  min_ram: 4               # -Xms in GB
  max_ram: 8               # -Xmx in GB
  server_jar_name: server.jar

selection:
  # File name fragments treated as client-only in server mode
  client_only_keywords: [sodium, iris, oculus, optifine, modmenu]

logging:
  level: INFO
  # event_log_dir: ~/.cache/mrzip/events
"""


class Config:
    """Configuration manager for mrzip."""

    def __init__(self, config_path: Optional[Path] = None):
        try:
            self.config = MrzipConfig().model_dump()
        except ValidationError as e:
            logger.error("Default configuration is invalid!")
            raise RuntimeError("Invalid default configuration") from e

        self.config_path = config_path

        if config_path:
            self.load_from_file(Path(config_path))
        else:
            default_path = get_default_config_path()
            if default_path.exists():
                logger.debug(f"Loading config from: {default_path}")
                self.load_from_file(default_path)

    def load_from_file(self, path: Path):
        """Load configuration from a YAML file on top of the current values."""
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            try:
                user_config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e

        if user_config:
            if not isinstance(user_config, dict):
                raise ValueError(f"Invalid configuration in {path}: expected a mapping")
            merged_config = self._deep_merge(self.config, user_config)
            try:
                self.config = MrzipConfig(**merged_config).model_dump()
                self.config_path = path
            except ValidationError as e:
                logger.error(f"Configuration validation failed: {path}")
                details = self._format_errors(e)
                raise ValueError(f"Invalid configuration in {path}: {details}") from e

    @staticmethod
    def _format_errors(error: ValidationError) -> str:
        lines: List[str] = []
        for err in error.errors():
            field_path = ".".join(str(loc) for loc in err["loc"])
            lines.append(f"{field_path}: {err['msg']}")
        return "; ".join(lines)

    def _deep_merge(self, base: Dict, update: Dict) -> Dict:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in update.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get config value using dot notation (e.g., 'downloads.timeout')."""
        value = self.config
        for key in key_path.split("."):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, key_path: str, value: Any):
        """Set config value using dot notation, validating the result."""
        keys = key_path.split(".")
        update: Dict[str, Any] = {keys[-1]: value}
        for key in reversed(keys[:-1]):
            update = {key: update}

        candidate = self._deep_merge(self.config, update)
        try:
            self.config = MrzipConfig(**candidate).model_dump()
        except ValidationError as e:
            for err in e.errors():
                err_path = ".".join(str(loc) for loc in err["loc"])
                if err_path == key_path or err_path.startswith(key_path):
                    raise ValueError(
                        f"Invalid value for {key_path}: {err['msg']}"
                    ) from e
            raise ValueError(
                f"Configuration validation failed after setting {key_path}"
            ) from e

    def save(self, path: Optional[Path] = None):
        """Save configuration to file."""
        save_path = path or self.config_path or get_default_config_path()
        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)

        with open(save_path, "w") as f:
            yaml.dump(self.config, f, default_flow_style=False)

    @staticmethod
    def write_example_config(path: Path) -> None:
        """Write a commented example configuration."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            f.write(EXAMPLE_CONFIG)

    def get_script_options(self) -> ScriptOptions:
        """Script defaults as ScriptOptions."""
        return ScriptOptions(**self.get("scripts", {}))

    def get_download_settings(self) -> Dict[str, Any]:
        return self.get("downloads", {}).copy()

    def to_dict(self) -> Dict[str, Any]:
        """Return the full configuration as a dictionary."""
        return self.config.copy()


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get global config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def load_config(path: Path) -> Config:
    """Load config from a specific path and make it the global instance."""
    global _config
    _config = Config(path)
    return _config
