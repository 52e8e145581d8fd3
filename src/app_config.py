"""Application configuration module for the page i18n tooling."""
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from src.csv_matcher import DEFAULT_KEY_COLUMNS, DEFAULT_LANGUAGE_COLUMNS
from src.json_updater import RECONCILE_MODES, STRICT
from src.logging_config import setup_logger
from src.page_filter import PageFilter
from src.placeholder_rules import PlaceholderRule, rules_from_config
from src.source_scanner import DEFAULT_SOURCE_EXTENSIONS


@dataclass
class AppConfig:
    """Application configuration dataclass."""
    # Core paths
    project_root: str
    src_path: str
    csv_directory: str

    # Source scanning
    placeholder_prefix: str
    source_extensions: List[str]
    page_filter: PageFilter

    # CSV matching
    source_language: str
    base_language: str
    key_columns: List[str]
    language_columns: Dict[str, List[str]]
    placeholder_rules: List[PlaceholderRule]

    # Processing settings
    reconcile_mode: str = STRICT
    json_indent: int = 2
    dry_run: bool = False
    build_pages: List[str] = field(default_factory=list)


def _compute_project_root() -> str:
    """Project root: ``I18N_PROJECT_ROOT`` if set, else the current working directory."""
    return os.path.abspath(os.environ.get('I18N_PROJECT_ROOT', os.getcwd()))


def _load_dotenv_files(project_root: str) -> None:
    """Load .env files from project root or docker directory."""
    dotenv_path_project_root = os.path.join(project_root, '.env')
    dotenv_path_docker_dir = os.path.join(project_root, 'docker', '.env')

    if os.path.exists(dotenv_path_project_root):
        load_dotenv(dotenv_path_project_root)
    elif os.path.exists(dotenv_path_docker_dir):
        load_dotenv(dotenv_path_docker_dir)


def _load_yaml_config(project_root: str, config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load the YAML configuration file. Problems are reported on stderr and an empty mapping is returned."""
    # An explicit path wins over I18N_CONFIG_FILE (potentially from .env), which wins over 'config.yaml'.
    default_config_path = os.path.join(project_root, 'config.yaml')
    config_file = config_path or os.environ.get('I18N_CONFIG_FILE', default_config_path)

    if not os.path.isabs(config_file):
        config_file = os.path.join(project_root, config_file)

    config = {}
    try:
        if not os.path.exists(config_file):
            print(f"Warning: Configuration file '{config_file}' not found. Using default configuration.",
                  file=sys.stderr)
            print(f"Tip: Create a config.yaml file in '{project_root}' or set I18N_CONFIG_FILE environment variable.",
                  file=sys.stderr)
            return config

        if not os.access(config_file, os.R_OK):
            print(f"Error: Configuration file '{config_file}' exists but is not readable. Check file permissions.",
                  file=sys.stderr)
            return config

        with open(config_file, 'r', encoding='utf-8') as config_file_stream:
            loaded_config = yaml.safe_load(config_file_stream)
            if loaded_config is None:
                print(f"Warning: Configuration file '{config_file}' is empty. Using default configuration.",
                      file=sys.stderr)
            elif isinstance(loaded_config, dict):
                config = loaded_config
                print(f"Successfully loaded configuration from: {config_file}", file=sys.stderr)
            else:
                print(f"Error: Configuration file '{config_file}' must contain a YAML dictionary. Using defaults.",
                      file=sys.stderr)

    except yaml.YAMLError as e:
        print(f"Error: Invalid YAML in configuration file '{config_file}': {e}", file=sys.stderr)
        print("Please check your YAML syntax. Using default configuration.", file=sys.stderr)
    except OSError as e:
        print(f"Error: Could not read configuration file '{config_file}': {e}", file=sys.stderr)
        print("Using default configuration.", file=sys.stderr)

    return config


def _setup_logger_from_config(
        config: Dict[str, Any],
        project_root: str,
        log_level_override: Optional[str] = None
) -> logging.Logger:
    """Set up logger based on configuration. A relative log file path is resolved against the project root."""
    log_config = config.get('logging') or {}
    log_level_str = (
        log_level_override
        or os.environ.get('I18N_LOG_LEVEL')
        or log_config.get('log_level', 'INFO')
    ).upper()
    log_file_path = log_config.get('log_file_path', os.path.join('logs', 'page_i18n.log'))
    if log_file_path:
        log_file_path = _resolve_path(project_root, log_file_path)
    log_to_console = log_config.get('log_to_console', True)
    return setup_logger(log_level_str, log_file_path, log_to_console)


def _log_dotenv_status(logger: logging.Logger, project_root: str) -> None:
    """Log the status of .env file loading."""
    dotenv_path_project_root = os.path.join(project_root, '.env')
    dotenv_path_docker_dir = os.path.join(project_root, 'docker', '.env')

    if os.path.exists(dotenv_path_project_root):
        logger.info("Loaded environment variables from: %s", dotenv_path_project_root)
    elif os.path.exists(dotenv_path_docker_dir):
        logger.info("Loaded environment variables from: %s", dotenv_path_docker_dir)
    else:
        logger.debug(
            "No .env file found in project root ('%s') or in docker/ ('%s'). Relying on system environment variables if any.",
            dotenv_path_project_root,
            dotenv_path_docker_dir
        )


def _resolve_path(project_root: str, path: str) -> str:
    return path if os.path.isabs(path) else os.path.join(project_root, path)


def _as_list(value: Any, name: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ValueError(f"'{name}' must be a list, got {type(value).__name__}.")
    return [str(item) for item in value]


def _build_language_columns(raw_columns: Any) -> Dict[str, List[str]]:
    """Merge configured header variants over the defaults, per language code."""
    columns = {lang: list(names) for lang, names in DEFAULT_LANGUAGE_COLUMNS.items()}
    if not raw_columns:
        return columns
    if not isinstance(raw_columns, dict):
        raise ValueError("'language_columns' must map language codes to lists of column names.")
    for lang, names in raw_columns.items():
        columns[str(lang)] = _as_list(names, f"language_columns.{lang}")
    return columns


def load_app_config(config_path: Optional[str] = None, log_level: Optional[str] = None) -> AppConfig:
    """
    Load application configuration from YAML file and environment variables.

    Args:
        config_path: Explicit configuration file, overriding ``I18N_CONFIG_FILE``.
        log_level: Explicit log level, overriding ``I18N_LOG_LEVEL`` and the file.

    Returns:
        AppConfig: The loaded application configuration.

    Raises:
        ValueError: If a configured value is invalid.
    """
    project_root = _compute_project_root()
    _load_dotenv_files(project_root)
    # .env may point the project root elsewhere
    project_root = _compute_project_root()

    config = _load_yaml_config(project_root, config_path)

    logger = _setup_logger_from_config(config, project_root, log_level)
    _log_dotenv_status(logger, project_root)

    reconcile_mode = os.environ.get('I18N_RECONCILE_MODE', config.get('reconcile_mode', STRICT))
    if reconcile_mode not in RECONCILE_MODES:
        raise ValueError(
            f"Unknown reconcile_mode '{reconcile_mode}'. Expected one of: {', '.join(RECONCILE_MODES)}"
        )

    csv_config = config.get('csv') or {}
    build_pages = _as_list(config.get('build_pages'), 'build_pages')
    raw_rules = config.get('placeholder_rules')
    placeholder_rules = rules_from_config(raw_rules if raw_rules is not None else [
        {'builtin': 'percent_index'},
        {'builtin': 'escape_at'},
        {'builtin': 'escape_hash'},
    ])

    try:
        json_indent = int(config.get('json_indent', 2))
    except (TypeError, ValueError) as e:
        raise ValueError(f"'json_indent' must be an integer: {e}") from e

    return AppConfig(
        project_root=project_root,
        src_path=_resolve_path(project_root, config.get('src_path', os.path.join('src', 'page'))),
        csv_directory=_resolve_path(project_root, csv_config.get('directory', 'translations')),
        placeholder_prefix=config.get('placeholder_prefix', 'zh_'),
        source_extensions=_as_list(
            config.get('source_extensions', list(DEFAULT_SOURCE_EXTENSIONS)), 'source_extensions'
        ),
        page_filter=PageFilter(build_pages),
        source_language=config.get('source_language', 'zh'),
        base_language=config.get('base_language', 'en'),
        key_columns=_as_list(csv_config.get('key_columns', DEFAULT_KEY_COLUMNS), 'csv.key_columns'),
        language_columns=_build_language_columns(config.get('language_columns')),
        placeholder_rules=placeholder_rules,
        reconcile_mode=reconcile_mode,
        json_indent=json_indent,
        dry_run=bool(config.get('dry_run', False)),
        build_pages=build_pages,
    )
