from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, cast

import yaml

DEFAULT_PLACEHOLDER = '-omitted-'
DEFAULT_SNIPPET_LENGTH = 15
# Plain ``Exception`` carries only a message and ``RuntimeError`` is the
# conventional wrapper for ``raise ... from err``.
DEFAULT_GENERIC_TYPE_PREFIXES: tuple[str, ...] = (
    'builtins.Exception',
    'builtins.RuntimeError',
)


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class TapConfig:
    generic_type_prefixes: tuple[str, ...] = DEFAULT_GENERIC_TYPE_PREFIXES
    path_placeholder: str = DEFAULT_PLACEHOLDER
    snippet_length: int = DEFAULT_SNIPPET_LENGTH
    # When False the response body is left out of CapturedFailure and reports
    log_response_bodies: bool = True
    # Logging configuration
    logging_json_enabled: bool = False
    logging_level: str = 'INFO'


DEFAULT_CONFIG = TapConfig()


def _parse_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {'1', 'true', 'yes', 'on'}:
        return True
    if isinstance(value, str) and value.strip().lower() in {'0', 'false', 'no', 'off', ''}:
        return False
    raise ConfigError(f'{name} must be a boolean, got {value!r}')


def _parse_prefixes(value: Any, name: str) -> tuple[str, ...]:
    if isinstance(value, str):
        items = [part.strip() for part in value.split(',')]
    elif isinstance(value, (list, tuple)):
        items = [str(part).strip() for part in value]
    else:
        raise ConfigError(f'{name} must be a list of type prefixes, got {value!r}')
    prefixes = tuple(item for item in items if item)
    return prefixes or DEFAULT_GENERIC_TYPE_PREFIXES


def apply_env_overrides(cfg: TapConfig) -> TapConfig:
    """Apply ``SENTRYTAP_*`` environment overrides on top of ``cfg``."""
    placeholder = os.environ.get('SENTRYTAP_PLACEHOLDER')
    if placeholder:
        cfg = replace(cfg, path_placeholder=placeholder)
    log_bodies = os.environ.get('SENTRYTAP_LOG_RESPONSE_BODIES')
    if log_bodies is not None:
        cfg = replace(
            cfg,
            log_response_bodies=_parse_bool(log_bodies, 'SENTRYTAP_LOG_RESPONSE_BODIES'),
        )
    generic = os.environ.get('SENTRYTAP_GENERIC_TYPES')
    if generic:
        cfg = replace(
            cfg, generic_type_prefixes=_parse_prefixes(generic, 'SENTRYTAP_GENERIC_TYPES')
        )
    return cfg


def load_config(path: str | Path) -> TapConfig:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f'Configuration file not found: {p}')
    try:
        raw = cast(dict[str, Any], yaml.safe_load(p.read_text()) or {})
    except yaml.YAMLError as exc:
        raise ConfigError(f'Invalid YAML in {p}: {exc}') from exc
    if not isinstance(raw, dict):
        raise ConfigError(f'Configuration root must be a mapping: {p}')
    fingerprint = cast(dict[str, Any], raw.get('fingerprint', {}) or {})
    classification = cast(dict[str, Any], raw.get('classification', {}) or {})
    logging_config = cast(dict[str, Any], raw.get('logging', {}) or {})

    try:
        snippet_length = int(fingerprint.get('snippet_length', DEFAULT_SNIPPET_LENGTH))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f'fingerprint.snippet_length must be an integer: {exc}') from exc
    if snippet_length < 0:
        raise ConfigError('fingerprint.snippet_length must not be negative')

    cfg = TapConfig(
        generic_type_prefixes=_parse_prefixes(
            classification.get('generic_type_prefixes', list(DEFAULT_GENERIC_TYPE_PREFIXES)),
            'classification.generic_type_prefixes',
        ),
        path_placeholder=str(fingerprint.get('placeholder') or DEFAULT_PLACEHOLDER),
        snippet_length=snippet_length,
        log_response_bodies=_parse_bool(
            fingerprint.get('log_response_bodies', True), 'fingerprint.log_response_bodies'
        ),
        # Logging configuration
        logging_json_enabled=bool(logging_config.get('json_enabled', False)),
        logging_level=str(logging_config.get('level', 'INFO')),
    )
    return apply_env_overrides(cfg)


__all__ = [
    'DEFAULT_CONFIG',
    'DEFAULT_GENERIC_TYPE_PREFIXES',
    'DEFAULT_PLACEHOLDER',
    'DEFAULT_SNIPPET_LENGTH',
    'ConfigError',
    'TapConfig',
    'apply_env_overrides',
    'load_config',
]
