"""
Purpose:
    - Loads a TOML config file
    - Validates the [bus] and [poller] sections into AppConfig
"""

import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from cryptofolio.config.configs import AppConfig
from cryptofolio.errors.errors import ConfigurationError


def validation_error_parser(error: ValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors into {path, message, error_type} records."""
    parsed: list[dict[str, str]] = []
    for err in error.errors():
        parsed.append(
            {
                "path": ".".join(str(part) for part in err.get("loc", ())),
                "message": err.get("msg", ""),
                "error_type": err.get("type", ""),
            }
        )
    return parsed


class ConfigLoader:
    """
    Config-loader; loading toml file.
    """

    def __init__(self, base_dir: str = ".") -> None:
        self._base_dir = base_dir

    def load(self, file_name: str) -> dict[str, Any]:
        path = Path(file_name)
        if not path.is_absolute():
            path = Path(self._base_dir) / file_name

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with path.open("rb") as f:
            return tomllib.load(f)

    def load_app_config(self, file_name: str) -> AppConfig:
        return self.parse(self.load(file_name))

    @staticmethod
    def parse(data: dict[str, Any]) -> AppConfig:
        try:
            return AppConfig.model_validate(data)
        except ValidationError as e:
            parsed = validation_error_parser(e)
            first = parsed[0] if parsed else {"path": None, "message": str(e)}
            raise ConfigurationError(
                f"Invalid config: {first['message']}", field=first["path"]
            ) from e
