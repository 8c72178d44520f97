import os
from logging import Logger
from typing import Any

import yaml
from simple_logger.logger import get_logger

from ado_pr_service.libs.exceptions import NoApiTokenError
from ado_pr_service.utils.constants import (
    AUTO_COMPLETE_DEFAULTS,
    DATA_DIR_ENV,
    DEFAULT_DATA_DIR,
    IDENTITY_API_LEGACY_STR,
    IDENTITY_APIS,
    MERGE_STRATEGIES,
    TOKEN_ENV,
)


class Config:
    def __init__(self, logger: Logger | None = None) -> None:
        self.logger = logger or get_logger(name="config")
        self.data_dir: str = os.environ.get(DATA_DIR_ENV, DEFAULT_DATA_DIR)
        self.config_path: str = os.path.join(self.data_dir, "config.yaml")
        self.exists()
        self.required_fields_exists()

    def exists(self) -> None:
        if not os.path.isfile(self.config_path):
            raise FileNotFoundError(f"Config file {self.config_path} not found")

    def required_fields_exists(self) -> None:
        root_data = self.root_data
        if not root_data.get("base-url"):
            raise ValueError(f"Config {self.config_path} does not have `base-url`")

        if not (root_data.get("projects") or root_data.get("repositories")):
            raise ValueError(f"Config {self.config_path} does not have `projects` or `repositories`")

    @property
    def root_data(self) -> dict[str, Any]:
        try:
            with open(self.config_path) as fd:
                return yaml.safe_load(fd) or {}
        except FileNotFoundError:
            self.logger.exception(f"Config file not found: {self.config_path}")
            raise
        except yaml.YAMLError:
            self.logger.exception(f"Config file has invalid YAML syntax: {self.config_path}")
            raise
        except PermissionError:
            self.logger.exception(f"Permission denied reading config file: {self.config_path}")
            raise

    def get_value(self, value: str, return_on_none: Any = None) -> Any:
        """
        Get value from config

        Supports dot notation for nested values (e.g., "auto-complete.merge-strategy")
        """
        result = self._get_nested_value(value, self.root_data)
        if result is not None:
            return result

        return return_on_none

    def _get_nested_value(self, key: str, data: dict[str, Any]) -> Any:
        """
        Get value from nested dict using dot notation.

        Args:
            key: Key with optional dot notation (e.g., "auto-complete.merge-strategy")
            data: Dictionary to search

        Returns:
            Value if found, None otherwise
        """
        keys = key.split(".")
        current = data

        for k in keys:
            if isinstance(current, dict) and k in current:
                current = current[k]
            else:
                return None

        return current

    @property
    def base_url(self) -> str:
        return self.get_value(value="base-url").rstrip("/")

    @property
    def pat_token(self) -> str:
        """
        Personal access token from config, falling back to the AZURE_DEVOPS_TOKEN environment variable.

        Raises:
            NoApiTokenError: If no token is configured
        """
        token = self.get_value(value="pat-token") or os.getenv(TOKEN_ENV)
        if not token:
            raise NoApiTokenError(f"No `pat-token` in {self.config_path} and {TOKEN_ENV} is not set")

        return token

    @property
    def identity_api(self) -> str:
        return self.get_value(value="identity-api", return_on_none=IDENTITY_API_LEGACY_STR)

    def get_auto_complete_config(self) -> dict[str, Any]:
        """
        Get auto-complete settings with defaults applied.

        Returns:
            Dictionary with merge-strategy, delete-source-branch and transition-work-items
        """
        auto_complete = dict(AUTO_COMPLETE_DEFAULTS)
        auto_complete.update(self.get_value(value="auto-complete", return_on_none={}))
        return auto_complete

    def validate(self) -> list[str]:
        """
        Validate configuration field types.

        Returns:
            List of error messages, empty when the configuration is valid
        """
        errors: list[str] = []
        config = self.root_data

        for field in ("base-url", "pat-token", "log-level", "log-file", "identity-api"):
            if field in config and not isinstance(config[field], str):
                errors.append(f"Field '{field}' must be a string")

        for field in ("ssh-auth", "skip-forks", "skip-disabled", "mask-sensitive-data"):
            if field in config and not isinstance(config[field], bool):
                errors.append(f"Field '{field}' must be a boolean")

        for field in ("projects", "repositories"):
            if field in config and not isinstance(config[field], list):
                errors.append(f"Field '{field}' must be an array")

        identity_api = config.get("identity-api")
        if isinstance(identity_api, str) and identity_api not in IDENTITY_APIS:
            errors.append(f"Field 'identity-api' must be one of: {', '.join(sorted(IDENTITY_APIS))}")

        auto_complete = config.get("auto-complete")
        if auto_complete is not None:
            if not isinstance(auto_complete, dict):
                errors.append("Field 'auto-complete' must be an object")
            else:
                strategy = auto_complete.get("merge-strategy")
                if strategy is not None and strategy not in MERGE_STRATEGIES:
                    errors.append(
                        f"Field 'auto-complete.merge-strategy' must be one of: {', '.join(sorted(MERGE_STRATEGIES))}"
                    )
                for field in ("delete-source-branch", "transition-work-items"):
                    if field in auto_complete and not isinstance(auto_complete[field], bool):
                        errors.append(f"Field 'auto-complete.{field}' must be a boolean")

        return errors
