"""Configuration loader for SiteChat settings."""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_CONFIG = {
    'user_agent': (
        'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
        '(KHTML, like Gecko) Chrome/124.0 Safari/537.36'
    ),
    'crawl': {
        'max_pages': 10,
        'page_timeout': 30,
        'sitemap_timeout': 10,
        'max_nested_sitemaps': 10,
        'use_sitemap': True,
        'renderer': 'browser',
        'resolve_dns': False
    },
    'embeddings': {
        'model_name': 'sentence-transformers/all-MiniLM-L6-v2',
        'cache_dir': None,
        'batch_size': 32
    },
    'retrieval': {
        'top_k': 5,
        'history_limit': 10
    },
    'completion': {
        'base_url': 'https://openrouter.ai/api/v1',
        'model': 'meta-llama/llama-3.2-3b-instruct:free',
        'api_key_env': 'OPENROUTER_API_KEY',
        'timeout': 60
    },
    'jobs': {
        'max_workers': 2,
        'max_finished_jobs': 500
    },
    'logging': {
        'level': 'INFO',
        'json': False,
        'file': None
    }
}


class AppConfig:
    """Application configuration manager."""

    def __init__(self, config_path: str = None):
        self.config_path = config_path or self._get_default_config_path()
        self._config = self._load_config()

    def _get_default_config_path(self) -> str:
        """Get the default configuration file path."""
        possible_paths = [
            os.environ.get('SITECHAT_CONFIG'),
            os.path.join(os.getcwd(), 'config', 'sitechat.yaml'),
            os.path.join(Path(__file__).parent, 'sitechat.yaml'),
            os.path.join(os.path.expanduser('~'), '.sitechat', 'sitechat.yaml')
        ]

        for path in possible_paths:
            if path and os.path.exists(path):
                return path

        # Return the expected path even if it doesn't exist
        return os.path.join(Path(__file__).parent, 'sitechat.yaml')

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file or use defaults."""
        config = copy.deepcopy(DEFAULT_CONFIG)

        if os.path.exists(self.config_path):
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    file_config = yaml.safe_load(f) or {}
                config = self._deep_merge(config, file_config)
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Failed to load config from {self.config_path}: {e}; using defaults")
        else:
            logger.debug(f"Config file not found at {self.config_path}, using defaults")

        return config

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dotted key, e.g. 'crawl.max_pages'."""
        value = self._config
        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def get_user_agent(self) -> str:
        return self.get('user_agent', DEFAULT_CONFIG['user_agent'])

    def get_crawl_settings(self) -> Dict[str, Any]:
        return {**DEFAULT_CONFIG['crawl'], **self.get('crawl', {})}

    def get_embedding_settings(self) -> Dict[str, Any]:
        return {**DEFAULT_CONFIG['embeddings'], **self.get('embeddings', {})}

    def get_retrieval_settings(self) -> Dict[str, Any]:
        return {**DEFAULT_CONFIG['retrieval'], **self.get('retrieval', {})}

    def get_completion_settings(self) -> Dict[str, Any]:
        """Completion settings with the API key resolved from the environment."""
        settings = {**DEFAULT_CONFIG['completion'], **self.get('completion', {})}
        settings['api_key'] = os.environ.get(settings['api_key_env'])
        return settings

    def get_max_workers(self) -> int:
        return int(self.get('jobs.max_workers', 2))

    def get_max_finished_jobs(self) -> int:
        return int(self.get('jobs.max_finished_jobs', 500))

    def get_logging_settings(self) -> Dict[str, Any]:
        return {**DEFAULT_CONFIG['logging'], **self.get('logging', {})}

    def reload(self):
        """Reload configuration from file."""
        self._config = self._load_config()

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._config)


_app_config: Optional[AppConfig] = None


def get_app_config() -> AppConfig:
    """Get the process-wide configuration, loading it on first use."""
    global _app_config
    if _app_config is None:
        _app_config = AppConfig()
    return _app_config
