"""Configuration management service"""

import logging
import os
from pathlib import Path
from typing import List, Optional

import yaml

from ..api.exceptions import ConfigError
from ..constants import (
    ENV_CONFIG_PATH,
    PROJECT_CONFIG_FILE,
    USER_CONFIG_DIR,
    USER_CONFIG_FILE,
)
from ..models.config import DeployConfig

logger = logging.getLogger(__name__)


class ConfigService:
    """Service for locating and loading engine configuration"""

    def __init__(self, project_root: Optional[Path] = None, home_dir: Optional[Path] = None):
        """Initialize config service

        Args:
            project_root: Directory searched for ``.context-deploy.yaml``
            home_dir: Directory holding the user-level ``.context-deploy`` folder
        """
        self.project_root = Path(project_root) if project_root else Path.cwd()
        self.home_dir = Path(home_dir) if home_dir else Path.home()
        self.config_path: Optional[Path] = None
        self._config: Optional[DeployConfig] = None

    @property
    def config(self) -> DeployConfig:
        """Get current configuration (lazy load)"""
        if self._config is None:
            self.load_config()
        return self._config

    def candidate_paths(self, explicit: Optional[Path] = None) -> List[Path]:
        """Configuration files in search order"""
        candidates = []
        if explicit:
            candidates.append(Path(explicit).expanduser())
        env_path = os.environ.get(ENV_CONFIG_PATH)
        if env_path:
            candidates.append(Path(env_path).expanduser())
        candidates.append(self.project_root / PROJECT_CONFIG_FILE)
        candidates.append(self.home_dir / USER_CONFIG_DIR / USER_CONFIG_FILE)
        return candidates

    def find_config(self, explicit: Optional[Path] = None) -> Optional[Path]:
        """
        Find the configuration file to use

        Args:
            explicit: Path given on the command line

        Returns:
            First existing candidate, or None

        Raises:
            ConfigError: If an explicitly requested file does not exist
        """
        if explicit and not Path(explicit).expanduser().is_file():
            raise ConfigError(f"Configuration file not found: {explicit}")
        for candidate in self.candidate_paths(explicit):
            if candidate.is_file():
                return candidate
        return None

    def load_config(self, explicit: Optional[Path] = None) -> DeployConfig:
        """Load configuration from file

        Falls back to defaults when no configuration file exists.

        Args:
            explicit: Path given on the command line

        Returns:
            Loaded configuration

        Raises:
            ConfigError: If the file cannot be read or holds invalid values
        """
        path = self.find_config(explicit)
        if path is None:
            logger.debug("No configuration file found; using defaults")
            self.config_path = None
            self._config = DeployConfig()
            return self._config

        self._config = self.load_file(path)
        self.config_path = path
        return self._config

    def load_file(self, path: Path) -> DeployConfig:
        """Load one configuration file"""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                content = f.read()
        except OSError as e:
            raise ConfigError(f"Cannot read configuration {path}: {e}")

        # Expand environment variables in the file
        content = os.path.expandvars(content)

        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}")

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration {path} must be a mapping")

        try:
            config = DeployConfig.from_dict(data)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration in {path}: {e}")

        logger.debug(f"Loaded configuration from {path}")
        return config

    def save_config(self, path: Path, config: Optional[DeployConfig] = None) -> Path:
        """Save configuration to file

        Args:
            path: Destination file
            config: Configuration to save (uses current if not provided)
        """
        config = config or self.config
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
        self.config_path = path
        self._config = config
        return path
