"""
Configuration loading for the migration stack.

Merges, in increasing precedence:
  1. the stack defaults (`dbmigration.defaults`)
  2. an optional JSON file with snake_case keys
  3. `MIGRATION_<FIELD>` environment variables (e.g. MIGRATION_PORT=3307)

The deploy target follows the CDK CLI conventions:
  - CDK_DEPLOY_ACCOUNT / CDK_DEFAULT_ACCOUNT  -> account
  - CDK_DEPLOY_REGION  / CDK_DEFAULT_REGION   -> region
The deploy variables win over the defaults the CDK CLI injects.

A `.env` file in the working directory (or the repo root) is loaded first;
variables already set in the shell are never overwritten.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from dotenv import load_dotenv

from .defaults import DEFAULT_PARAMETERS
from .errors import ConfigurationError
from .models import StackParameters

ENV_PREFIX = "MIGRATION_"

_FIELD_NAMES = tuple(f.name for f in fields(StackParameters))


def _load_dotenv(log: Optional[logging.LoggerAdapter] = None) -> None:
    """
    Load a .env file into the process environment (if one exists).

    Search order:
    1. Current working directory (.env)
    2. The repository root, one level above this package
    """
    cwd_env = Path.cwd() / ".env"
    repo_root_env = Path(__file__).resolve().parents[1] / ".env"

    env_file: Optional[Path] = None
    if cwd_env.is_file():
        env_file = cwd_env
    elif repo_root_env.is_file():
        env_file = repo_root_env

    if env_file is None:
        return

    loaded = load_dotenv(env_file, override=False)
    if log is not None:
        if loaded:
            log.debug("loaded .env from %s (shell vars take precedence)", env_file)
        else:
            log.debug(".env found at %s but all variables were already set in the environment", env_file)


def _get_env(environ: Mapping[str, str], name: str) -> Optional[str]:
    """Get environment variable, stripped; None if unset or empty."""
    value = environ.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def load_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a JSON object of configuration fields."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"cannot read config file {path}: {e}") from e
    except ValueError as e:
        raise ConfigurationError(f"config file {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"config file {path} must contain a JSON object")
    return data


def deploy_target(environ: Mapping[str, str]) -> Dict[str, str]:
    target = {}
    account = _get_env(environ, "CDK_DEPLOY_ACCOUNT") or _get_env(environ, "CDK_DEFAULT_ACCOUNT")
    region = _get_env(environ, "CDK_DEPLOY_REGION") or _get_env(environ, "CDK_DEFAULT_REGION")
    if account:
        target["account"] = account
    if region:
        target["region"] = region
    return target


def load_config(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
    *,
    log: Optional[logging.LoggerAdapter] = None,
) -> Dict[str, Any]:
    """
    Build the raw configuration mapping handed to `resolve_parameters`.

    Args:
        path: Optional JSON config file
        environ: Environment to read from (defaults to os.environ, after .env loading)
        log: Optional logger for diagnostics

    Returns:
        Flat snake_case mapping; values from the environment are left as strings
    """
    if environ is None:
        _load_dotenv(log=log)
        environ = os.environ

    config: Dict[str, Any] = dict(DEFAULT_PARAMETERS)
    config.update(deploy_target(environ))
    if path is not None:
        config.update(load_config_file(path))
        if log is not None:
            log.debug("loaded config file %s", path)

    overrides = {}
    for name in _FIELD_NAMES:
        value = _get_env(environ, ENV_PREFIX + name.upper())
        if value is not None:
            overrides[name] = value
    if overrides and log is not None:
        log.debug("environment overrides: %s", ", ".join(sorted(overrides)))
    config.update(overrides)
    return config
