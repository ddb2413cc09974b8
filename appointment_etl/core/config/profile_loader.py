"""
Client profile configuration management.

Loads client feeds from a YAML file and validates each into a ClientProfile.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from appointment_etl.core.models import ClientProfile

_ENV_REFERENCE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


class ProfileConfigLoader:
    """
    Loads client profiles from YAML configuration files.

    Expected YAML format:
    ```yaml
    clients:
      - client_id: 61a04be0-c0a0-440b-a395-01c1ec49c882
        client_key: 7
        transform: bracketed_codes
        date_format: yyyyMMddHHmm
        source:
          type: sftp
          host: sftp.example.org
          username: lakeside
          password: ${LAKESIDE_SFTP_PASSWORD}
          home_directory: lakeside
          appointment_directory: inbound
          archive_directory: processed
        settings:
          staging_bucket: appointment-staging
          archive_bucket: appointment-archive

      - client_id: dca42d06-155d-46e3-8194-e47549f042a5
        client_key: 9
        transform: status_sync
        date_format: "%m/%d/%Y"
        source:
          type: blob
          source_container: gastro-inbound
          archive_container: gastro-processed
        settings:
          staging_bucket: appointment-staging
          archive_bucket: appointment-archive
    ```

    `${VAR}` references in string values are expanded from the environment.
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize the profile config loader.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Client profile configuration not found: {config_path}")

    def load_profiles(self) -> list[ClientProfile]:
        """
        Load and validate every client profile in the file.

        Returns:
            Profiles in file order

        Raises:
            ValueError: If YAML is invalid, a profile fails validation,
                a referenced environment variable is unset, or a client_id repeats
        """
        with open(self.config_path) as f:
            config = yaml.safe_load(f)

        if not config or "clients" not in config:
            raise ValueError("Configuration file must contain 'clients' section")
        if not isinstance(config["clients"], list):
            raise ValueError("'clients' must be a list")

        profiles: list[ClientProfile] = []
        seen: set[str] = set()
        for idx, entry in enumerate(config["clients"]):
            profile = self._parse_profile(entry, idx)
            if profile.client_id in seen:
                raise ValueError(f"Duplicate client_id '{profile.client_id}' in {self.config_path}")
            seen.add(profile.client_id)
            profiles.append(profile)

        return profiles

    def get_profile(self, client_id: str) -> ClientProfile:
        """
        Look up one profile by client_id.

        Raises:
            KeyError: If no profile has that client_id
        """
        for profile in self.load_profiles():
            if profile.client_id == client_id:
                return profile
        raise KeyError(f"No client profile for '{client_id}' in {self.config_path}")

    def _parse_profile(self, entry: Any, idx: int) -> ClientProfile:
        if not isinstance(entry, dict):
            raise ValueError(f"Client entry #{idx} must be a mapping")

        expanded = _expand_env(entry, f"clients[{idx}]")
        try:
            return ClientProfile.model_validate(expanded)
        except PydanticValidationError as e:
            label = entry.get("client_id", f"#{idx}")
            raise ValueError(f"Invalid client profile {label}: {e}") from e


def _expand_env(value: Any, location: str) -> Any:
    """Recursively expand ${VAR} references in string values."""
    if isinstance(value, str):
        def lookup(match: re.Match) -> str:
            name = match.group(1)
            resolved = os.getenv(name)
            if resolved is None:
                raise ValueError(f"Environment variable {name} referenced at {location} is not set")
            return resolved
        return _ENV_REFERENCE.sub(lookup, value)
    if isinstance(value, dict):
        return {key: _expand_env(item, f"{location}.{key}") for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_env(item, f"{location}[{i}]") for i, item in enumerate(value)]
    return value
