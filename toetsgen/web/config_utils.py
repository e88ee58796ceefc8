"""
Configuration utilities for the Toetsgenerator.
"""

import logging
import os
import secrets

import yaml
from dotenv import dotenv_values

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"
DEFAULT_ENV_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", ".env"))


def load_config(config_path=DEFAULT_CONFIG_PATH):
    """
    Read config.yaml and apply environment overrides.

    Args:
        config_path: Path to the YAML config file

    Returns:
        Application config dict
    """
    with open(config_path) as f:
        config = yaml.safe_load(f) or {}
    return apply_env_overrides(config)


def apply_env_overrides(config):
    """Let DATABASE_PATH and LLM_PROVIDER from the environment win over the file."""
    if os.environ.get("DATABASE_PATH"):
        config.setdefault("paths", {})["database_file"] = os.environ["DATABASE_PATH"]
    if os.environ.get("LLM_PROVIDER"):
        config.setdefault("llm", {})["provider"] = os.environ["LLM_PROVIDER"]
    return config


def get_approval_timeout(config):
    """Seconds the approval lookup may take (``access.approval_timeout_seconds``)."""
    raw = config.get("access", {}).get("approval_timeout_seconds", 30)
    try:
        return max(float(raw), 0.1)
    except (TypeError, ValueError):
        return 30.0


def get_secret_key(env_path=DEFAULT_ENV_PATH):
    """
    Flask SECRET_KEY: the environment first, then ``.env``.

    Without either a key is generated and appended to ``.env`` so sessions
    survive a restart. If ``.env`` is not writable the key only lives for
    this process.
    """
    secret_key = os.environ.get("SECRET_KEY") or dotenv_values(env_path).get("SECRET_KEY")
    if secret_key:
        return secret_key

    secret_key = secrets.token_hex(32)
    try:
        with open(env_path, "a", encoding="utf-8") as f:
            f.write(f"\nSECRET_KEY={secret_key}\n")
    except OSError as e:
        logger.warning("Could not store SECRET_KEY in %s: %s", env_path, e)
    return secret_key
