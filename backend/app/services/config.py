"""Configuration management and validation service."""

import os
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass

import yaml

logger = logging.getLogger(__name__)


@dataclass
class ConfigValidationError:
    """Represents a configuration validation error."""
    path: str
    message: str


class ConfigValidationException(Exception):
    """Raised when config validation fails."""

    def __init__(self, errors: List[ConfigValidationError]):
        self.errors = errors
        messages = [f"{e.path}: {e.message}" for e in errors]
        super().__init__("Configuration validation failed:\n" + "\n".join(messages))


CONFIG_SCHEMA = {
    "server": {
        "type": "dict",
        "properties": {
            "host": {"type": "str"},
            "port": {"type": "int", "min": 1, "max": 65535},
        }
    },
    "cors": {
        "type": "dict",
        "properties": {
            "allow_origins": {"type": "list", "items": "str"},
        }
    },
    "upstream": {
        "type": "dict",
        "properties": {
            "cookie_url": {"type": "str"},
            "crumb_url": {"type": "str"},
            "chart_url": {"type": "str"},
            "user_agent": {"type": "str"},
            "request_timeout_seconds": {"type": "float", "min": 0},
            "max_auth_retries": {"type": "int", "min": 0, "max": 5},
        }
    },
    "cache": {
        "type": "dict",
        "properties": {
            "quote_ttl_seconds": {"type": "int", "min": 1},
            "history_ttl_seconds": {"type": "int", "min": 1},
        }
    },
    "logging": {
        "type": "dict",
        "properties": {
            "level": {"type": "str", "options": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
            "format": {"type": "str"},
        }
    },
}


class ConfigService:
    """Service for loading and validating configuration."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize config service.

        Args:
            config_path: Path to config file. If None, uses QUOTEDASH_CONFIG
                or config.yaml in the backend directory.
        """
        if config_path is None:
            backend_dir = Path(__file__).parent.parent.parent
            config_path = os.environ.get("QUOTEDASH_CONFIG", str(backend_dir / "config.yaml"))

        self.config_path = config_path
        self._config: Dict[str, Any] = {}

    def load_and_validate(self) -> Dict[str, Any]:
        """Load and validate the configuration file.

        Returns:
            Validated configuration dictionary, empty if the file is absent.

        Raises:
            ConfigValidationException: If validation fails.
        """
        if not os.path.exists(self.config_path):
            logger.warning(f"Config file not found at {self.config_path}, using defaults")
            self._config = {}
            return self._config

        try:
            with open(self.config_path, 'r') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigValidationException([
                ConfigValidationError(path="", message=f"Invalid YAML syntax: {e}")
            ])

        if config is None:
            config = {}

        if not isinstance(config, dict):
            raise ConfigValidationException([
                ConfigValidationError(
                    path="",
                    message=f"Config must be a dictionary, got {type(config).__name__}"
                )
            ])

        errors = self.validate(config)
        if errors:
            raise ConfigValidationException(errors)

        self._config = config
        logger.info(f"Configuration loaded and validated from {self.config_path}")
        return config

    def validate(self, config: Dict[str, Any]) -> List[ConfigValidationError]:
        """Validate a configuration dictionary against CONFIG_SCHEMA."""
        return self._validate_dict(config, CONFIG_SCHEMA, "")

    def _validate_dict(
        self,
        data: Dict[str, Any],
        schema: Dict[str, Any],
        path: str
    ) -> List[ConfigValidationError]:
        errors = []

        for key in data:
            if key not in schema:
                errors.append(ConfigValidationError(
                    path=f"{path}.{key}" if path else key,
                    message=f"Unknown configuration key '{key}'"
                ))

        for key, prop_schema in schema.items():
            current_path = f"{path}.{key}" if path else key

            if key not in data:
                if prop_schema.get("required", False):
                    errors.append(ConfigValidationError(
                        path=current_path,
                        message="Required field missing"
                    ))
                continue

            errors.extend(self._validate_value(data[key], prop_schema, current_path))

        return errors

    def _validate_value(
        self,
        value: Any,
        schema: Dict[str, Any],
        path: str
    ) -> List[ConfigValidationError]:
        """Validate a single value against schema.

        Args:
            value: Value to validate
            schema: Schema to validate against
            path: Current path for error messages

        Returns:
            List of validation errors
        """
        errors = []
        expected_type = schema.get("type")

        type_map = {
            "str": str,
            "int": int,
            "float": (int, float),
            "bool": bool,
            "list": list,
            "dict": dict,
        }

        if expected_type == "dict":
            if not isinstance(value, dict):
                errors.append(ConfigValidationError(
                    path=path,
                    message=f"Expected dict, got {type(value).__name__}"
                ))
                return errors

            if "properties" in schema:
                errors.extend(self._validate_dict(value, schema["properties"], path))
            return errors

        expected = type_map.get(expected_type)
        # bool is an int subclass; reject it for numeric keys
        if expected is None or not isinstance(value, expected) or (
            expected_type in ("int", "float") and isinstance(value, bool)
        ):
            errors.append(ConfigValidationError(
                path=path,
                message=f"Expected {expected_type}, got {type(value).__name__}"
            ))
            return errors

        if expected_type in ("int", "float"):
            if "min" in schema and value < schema["min"]:
                errors.append(ConfigValidationError(
                    path=path,
                    message=f"Value {value} is below minimum {schema['min']}"
                ))
            if "max" in schema and value > schema["max"]:
                errors.append(ConfigValidationError(
                    path=path,
                    message=f"Value {value} is above maximum {schema['max']}"
                ))

        if expected_type == "list" and "items" in schema:
            item_type = type_map[schema["items"]]
            for i, item in enumerate(value):
                if not isinstance(item, item_type):
                    errors.append(ConfigValidationError(
                        path=f"{path}[{i}]",
                        message=f"Expected {schema['items']}, got {type(item).__name__}"
                    ))

        if "options" in schema and value not in schema["options"]:
            errors.append(ConfigValidationError(
                path=path,
                message=f"Value '{value}' not in allowed options: {schema['options']}"
            ))

        return errors

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value.

        Args:
            key: Dot-notation key (e.g., "cache.quote_ttl_seconds")
            default: Default value if not found

        Returns:
            Configuration value
        """
        value = self._config

        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value


# Global config service instance
config_service = ConfigService()
