"""
ORDEX configuration

Settings are layered: packaged ``default_config.yaml``, then
``~/.ordex/config.yaml``, then an explicit file passed to ``from_file``,
then ``ORDEX_*`` environment variables (a ``.env`` file is honoured).
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / 'default_config.yaml'
USER_CONFIG_PATH = Path('.ordex') / 'config.yaml'

ENV_OVERRIDES = {
    'ORDEX_DATABASE_URL': 'database.url',
    'ORDEX_LOG_LEVEL': 'logging.level',
    'ORDEX_MAX_CONCURRENT': 'queue.max_concurrent',
    'ORDEX_PRIMARY_PROVIDER': 'extraction.primary.provider',
    'ORDEX_PRIMARY_MODEL': 'extraction.primary.model',
    'ORDEX_FALLBACK_PROVIDER': 'extraction.fallback.provider',
    'ORDEX_FALLBACK_MODEL': 'extraction.fallback.model',
    'ORDEX_VISION_PROVIDER': 'extraction.vision.provider',
    'ORDEX_VISION_MODEL': 'extraction.vision.model',
    'ORDEX_WEBHOOK_URL': 'notifications.webhook_url',
    'ORDEX_WEBHOOK_SECRET': 'notifications.webhook_secret',
}

# Provider roles and where their settings live
PROVIDER_ROLES = {
    'primary': 'extraction.primary',
    'fallback': 'extraction.fallback',
    'vision': 'extraction.vision',
    'matching': 'matching',
}


class OrdexConfig:
    """
    Process-wide ORDEX settings (singleton)

    Use ``OrdexConfig.reset()`` to force a reload, e.g. between tests.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if getattr(self, 'initialized', False):
            return
        load_dotenv()
        with open(DEFAULT_CONFIG_PATH, 'r', encoding='utf-8') as f:
            self.config: Dict[str, Any] = yaml.safe_load(f)
        self.sources: List[str] = [str(DEFAULT_CONFIG_PATH)]

        user_config = Path.home() / USER_CONFIG_PATH
        if user_config.exists():
            self._merge_file(user_config)
        self._apply_env_overrides()
        self.initialized = True

    @classmethod
    def from_file(cls, config_path: str) -> 'OrdexConfig':
        """
        Merge a YAML file over the current settings

        Args:
            config_path: Path to the YAML file

        Returns:
            The singleton

        Raises:
            RuntimeError: If the file is missing, empty, not YAML or not a mapping
        """
        instance = cls()
        instance._merge_file(Path(config_path))
        # Environment still wins over files
        instance._apply_env_overrides()
        return instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key, e.g. ``queue.max_attempts``"""
        node: Any = self.config
        for part in key.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Set a dotted key, creating intermediate sections"""
        *parents, leaf = key.split('.')
        node = self.config
        for part in parents:
            if not isinstance(node.get(part), dict):
                node[part] = {}
            node = node[part]
        node[leaf] = value

    def section(self, name: str) -> Dict[str, Any]:
        """Copy of a section (dotted names allowed); empty when absent"""
        value = self.get(name)
        return copy.deepcopy(value) if isinstance(value, dict) else {}

    def get_database_config(self) -> Dict[str, Any]:
        return self.section('database')

    def provider_settings(self, role: str) -> Optional[Dict[str, Any]]:
        """
        Provider settings for a role

        Args:
            role: One of ``primary``, ``fallback``, ``vision`` or ``matching``

        Returns:
            Dict with at least ``provider`` (and usually ``model``), or None
            when the role is switched off (no provider configured)
        """
        if role not in PROVIDER_ROLES:
            raise KeyError(f"Unknown provider role: {role}")
        settings = self.section(PROVIDER_ROLES[role])
        if not settings.get('provider'):
            return None
        return {k: v for k, v in settings.items() if k in ('provider', 'model', 'api_key')}

    def _merge_file(self, path: Path) -> None:
        if not path.exists():
            raise RuntimeError(f"Configuration file not found: {path}")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise RuntimeError(f"Invalid YAML in configuration file {path}: {e}")

        if data is None:
            raise RuntimeError(f"Configuration file is empty: {path}")
        if not isinstance(data, dict):
            raise RuntimeError(f"Configuration must be a dictionary, got {type(data).__name__}: {path}")

        _deep_merge(self.config, data)
        self.sources.append(str(path))
        logger.info(f"Configuration loaded from {path}")

    def _apply_env_overrides(self) -> None:
        for env_var, key in ENV_OVERRIDES.items():
            raw = os.getenv(env_var)
            if not raw:
                continue
            # "5" -> 5, "true" -> True; anything else stays a string
            try:
                value = yaml.safe_load(raw)
            except yaml.YAMLError:
                value = raw
            self.set(key, value if isinstance(value, (int, float, bool)) else raw)
            logger.debug(f"{env_var} overrides {key}")


def _deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> None:
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def setup_logging(config: Optional[OrdexConfig] = None, level: Optional[str] = None) -> None:
    """
    Configure root logging from the ``logging`` section

    Args:
        config: Configuration (defaults to the singleton)
        level: Level name overriding the configured one
    """
    settings = (config or OrdexConfig()).section('logging')
    level_name = (level or settings.get('level') or 'INFO').upper()

    kwargs: Dict[str, Any] = {
        'level': getattr(logging, level_name, logging.INFO),
        'format': settings.get('format') or '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    }
    if settings.get('file'):
        kwargs['filename'] = settings['file']

    logging.basicConfig(**kwargs)
