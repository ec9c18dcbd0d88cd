"""Configuration loader with YAML support and environment variable substitution."""

import copy
import os
import re
from typing import Any, Dict
from urllib.parse import urlparse

import yaml

from models import RunMode

DEFAULT_CONFIG: Dict[str, Any] = {
    'trello': {
        'api_base_url': 'https://trello.com/1/',
        'api_key': None,
        'token': None,
        'board_url': None,
        'export_url': None,
        'verify_ssl': True,
        'forward_credentials_to_downloads': False,
    },
    'export': {
        'mode': None,
        'output_directory': './trello-export',
        'manifest_filename': '00-cards.json',
        'manifest_after_settle': False,
        'progress_bars': True,
        'report_path': None,
    },
    'advanced': {
        'request_timeout': 30,
        'max_workers': 8,
        'rate_limit': 0.0,
    },
    'logging': {
        'level': 'INFO',
        'file': None,
    },
}


class ConfigLoader:
    """Handles loading and validation of configuration files."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')

    @classmethod
    def load(cls, config_path: str, required: bool = True) -> Dict[str, Any]:
        """
        Load configuration from YAML file with environment variable substitution.

        Values missing from the file fall back to ``DEFAULT_CONFIG``.

        Args:
            config_path: Path to YAML configuration file
            required: Raise if the file doesn't exist; otherwise use defaults

        Returns:
            Parsed configuration dictionary

        Raises:
            FileNotFoundError: If config file doesn't exist and is required
            yaml.YAMLError: If YAML parsing fails
        """
        if not os.path.exists(config_path):
            if required:
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            return copy.deepcopy(DEFAULT_CONFIG)

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a dictionary")

        config_data = cls._substitute_env_vars_recursive(config_data)

        return _deep_merge(DEFAULT_CONFIG, config_data)

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> None:
        """
        Validate configuration for required fields and correct values.

        Args:
            config: Configuration dictionary to validate

        Raises:
            ValueError: If validation fails
        """
        mode = get_nested(config, 'export.mode')
        try:
            RunMode(mode)
        except ValueError:
            raise ValueError(
                f"export.mode must be one of: {[m.value for m in RunMode]}"
            )

        cls._validate_required_field(config, 'trello.board_url')
        cls._validate_url(get_nested(config, 'trello.board_url'), 'trello.board_url')
        cls._validate_url(
            get_nested(config, 'trello.api_base_url') or DEFAULT_CONFIG['trello']['api_base_url'],
            'trello.api_base_url'
        )

        # Both credentials or neither; a lone key or token would be an unsubstituted leftover
        api_key = get_nested(config, 'trello.api_key')
        token = get_nested(config, 'trello.token')
        if api_key or token:
            cls._validate_required_field(config, 'trello.api_key')
            cls._validate_required_field(config, 'trello.token')

        cls._validate_required_field(config, 'export.output_directory')
        output_dir = str(get_nested(config, 'export.output_directory'))
        if os.path.exists(output_dir) and not os.path.isdir(output_dir):
            raise ValueError(f"export.output_directory '{output_dir}' is not a directory")

        manifest_filename = get_nested(config, 'export.manifest_filename') or '00-cards.json'
        if not manifest_filename or '/' in manifest_filename or '\\' in manifest_filename:
            raise ValueError("export.manifest_filename must be a plain file name")

        for flag in ('trello.verify_ssl', 'trello.forward_credentials_to_downloads',
                     'export.manifest_after_settle', 'export.progress_bars'):
            value = get_nested(config, flag)
            if value is not None and not isinstance(value, bool):
                raise ValueError(f"{flag} must be a boolean")

        timeout = get_nested(config, 'advanced.request_timeout', 30)
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError("advanced.request_timeout must be a positive number")

        max_workers = get_nested(config, 'advanced.max_workers', 8)
        if isinstance(max_workers, bool) or not isinstance(max_workers, int) or max_workers < 1:
            raise ValueError("advanced.max_workers must be a positive integer")

        rate_limit = get_nested(config, 'advanced.rate_limit', 0.0)
        if isinstance(rate_limit, bool) or not isinstance(rate_limit, (int, float)) or rate_limit < 0:
            raise ValueError("advanced.rate_limit must be a non-negative number")

    @classmethod
    def merge_with_args(cls, config: Dict[str, Any], args) -> Dict[str, Any]:
        """
        Merge configuration file with CLI arguments.
        CLI arguments take precedence over config file values.

        Args:
            config: Base configuration dictionary
            args: CLI arguments with attributes matching config keys

        Returns:
            Merged configuration dictionary
        """
        merged = copy.deepcopy(config)

        for section in ('trello', 'export', 'advanced', 'logging'):
            merged.setdefault(section, {})

        if getattr(args, 'mode', None):
            merged['export']['mode'] = args.mode

        if getattr(args, 'board_url', None):
            merged['trello']['board_url'] = args.board_url

        if getattr(args, 'export_url', None):
            merged['trello']['export_url'] = args.export_url

        if getattr(args, 'output_dir', None):
            merged['export']['output_directory'] = args.output_dir

        if getattr(args, 'max_workers', None):
            merged['advanced']['max_workers'] = args.max_workers

        if getattr(args, 'progress', None) is not None:
            merged['export']['progress_bars'] = args.progress

        if getattr(args, 'manifest_after_settle', None) is not None:
            merged['export']['manifest_after_settle'] = args.manifest_after_settle

        if getattr(args, 'report_path', None):
            merged['export']['report_path'] = args.report_path

        verbose = getattr(args, 'verbose', 0) or 0
        if verbose >= 2:
            merged['logging']['level'] = 'DEBUG'
        elif verbose == 1:
            merged['logging']['level'] = 'INFO'

        return merged

    @classmethod
    def _substitute_env_vars_recursive(cls, data: Any) -> Any:
        """Recursively substitute environment variables in data structure."""
        if isinstance(data, dict):
            return {key: cls._substitute_env_vars_recursive(value) for key, value in data.items()}
        elif isinstance(data, list):
            return [cls._substitute_env_vars_recursive(item) for item in data]
        elif isinstance(data, str):
            return cls._substitute_env_vars(data)
        else:
            return data

    @classmethod
    def _substitute_env_vars(cls, value: str) -> str:
        """Substitute environment variables in a string value."""
        def replace_match(match):
            var_name = match.group(1)
            env_value = os.getenv(var_name)
            return env_value if env_value is not None else match.group(0)

        return cls.ENV_VAR_PATTERN.sub(replace_match, value)

    @staticmethod
    def _validate_required_field(config_section: dict, field: str) -> None:
        """Validate that a required field exists and has a value."""
        value = get_nested(config_section, field)
        if value is None or value == '':
            raise ValueError(f"Missing required configuration: {field}")

        if isinstance(value, str) and '${' in value:
            match = ConfigLoader.ENV_VAR_PATTERN.search(value)
            var_name = match.group(1) if match else value
            raise ValueError(
                f"Configuration field '{field}' contains unsubstituted environment variable: {value}. "
                f"Please set the {var_name} environment variable or provide a value in config file."
            )

    @staticmethod
    def _validate_url(url: str, field_name: str) -> None:
        """Validate URL format."""
        parsed = urlparse(url or '')
        if not parsed.scheme or parsed.scheme not in ['http', 'https']:
            raise ValueError(f"{field_name} must use http or https scheme: {url}")
        if not parsed.netloc:
            raise ValueError(f"{field_name} missing hostname: {url}")


def get_nested(config: dict, path: str, default: Any = None) -> Any:
    """Safely retrieve nested configuration values using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "trello.board_url")
        default: Default value if path doesn't exist

    Returns:
        Value at the nested path or default
    """
    keys = path.split('.')
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``base`` with ``override`` merged in recursively."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


__all__ = ['ConfigLoader', 'DEFAULT_CONFIG', 'get_nested']
