"""Engine configuration loader."""

import hashlib
from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from learnfeed.config.schemas import EngineConfig


logger = structlog.get_logger()


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    def __init__(self, errors: list[dict[str, str]], file_path: str) -> None:
        """Initialize the error.

        Args:
            errors: List of validation error details.
            file_path: Path to the file that failed validation.
        """
        self.errors = errors
        self.file_path = file_path
        super().__init__(f"Validation failed for {file_path}: {len(errors)} errors")


class ConfigLoader:
    """Loads and validates the engine configuration file.

    A missing path yields the built-in defaults; a present file is parsed
    with PyYAML and validated against ``EngineConfig``.
    """

    def __init__(self) -> None:
        self._checksum: str | None = None

    @property
    def checksum(self) -> str | None:
        """SHA-256 of the last loaded file, if any."""
        return self._checksum

    def load(self, path: Path | None = None) -> EngineConfig:
        """Load the engine configuration.

        Args:
            path: Path to engine.yaml, or None for defaults.

        Returns:
            Validated EngineConfig.

        Raises:
            ConfigValidationError: If the file is missing, unparsable, or
                fails schema validation.
        """
        log = logger.bind(component="config")
        if path is None:
            log.debug("engine_config_defaults")
            return EngineConfig()

        try:
            content = path.read_bytes()
        except FileNotFoundError as e:
            log.error("config_file_not_found", file_path=str(path))
            raise ConfigValidationError(
                [{"loc": "file", "msg": str(e), "type": "file_not_found"}],
                str(path),
            ) from e

        self._checksum = hashlib.sha256(content).hexdigest()

        try:
            parsed = yaml.safe_load(content.decode("utf-8")) or {}
        except yaml.YAMLError as e:
            log.error("config_yaml_parse_error", file_path=str(path), error=str(e))
            raise ConfigValidationError(
                [{"loc": "yaml", "msg": str(e), "type": "yaml_parse_error"}],
                str(path),
            ) from e

        try:
            config = EngineConfig.model_validate(parsed)
        except ValidationError as e:
            errors = [
                {
                    "loc": ".".join(str(loc) for loc in err["loc"]),
                    "msg": err["msg"],
                    "type": err["type"],
                }
                for err in e.errors()
            ]
            log.error(
                "config_validation_failed",
                file_path=str(path),
                validation_error_count=len(errors),
                errors=errors,
            )
            raise ConfigValidationError(errors, str(path)) from e

        log.info(
            "config_file_loaded",
            file_path=str(path),
            file_sha256=self._checksum,
            version=config.version,
        )
        return config


def load_engine_config(path: Path | None = None) -> EngineConfig:
    """Load engine configuration from an optional YAML path."""
    return ConfigLoader().load(path)
