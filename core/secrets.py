"""
API key lookup backed by the OS keychain.

Keys are read from the keychain first (Windows Credential Manager, macOS
Keychain, Secret Service on Linux) and fall back to environment variables.

Usage:
    from core.secrets import get_api_key, set_api_key

    key = get_api_key("RUNWAY_API_KEY")
    set_api_key("RUNWAY_API_KEY", "key_...")
"""

import os
import logging
from typing import Dict, Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

logger = logging.getLogger(__name__)

# Service name for keychain entries
SERVICE_NAME = "continuity-studio"

# Known API key names and what they unlock
KNOWN_KEYS = {
    "ANTHROPIC_API_KEY": "Anthropic API key (planner, screenwriter)",
    "FAL_API_KEY": "fal.ai API key (reference images)",
    "RUNWAY_API_KEY": "Runway API key (scene video)",
    "ELEVENLABS_API_KEY": "ElevenLabs API key (dialogue)",
    "SYNC_API_KEY": "sync.so API key (lip-sync)",
    "RENDER_API_KEY": "Assembly server API key (final render)",
}


def get_api_key(key_name: str, fallback_to_env: bool = True) -> Optional[str]:
    """
    Get an API key, checking keychain first then environment variables.

    Args:
        key_name: Name of the API key (e.g., "RUNWAY_API_KEY")
        fallback_to_env: If True, check environment variables if not in keychain

    Returns:
        The API key value, or None if not found
    """
    try:
        value = keyring.get_password(SERVICE_NAME, key_name)
        if value:
            logger.debug(f"Retrieved {key_name} from secure keychain")
            return value
    except KeyringError as e:
        logger.debug(f"Keychain access failed for {key_name}: {e}")

    if fallback_to_env:
        value = os.environ.get(key_name)
        if value:
            logger.debug(f"Retrieved {key_name} from environment variable")
            return value

    return None


def set_api_key(key_name: str, value: str) -> bool:
    """Store an API key in the OS keychain. Returns False if no backend works."""
    try:
        keyring.set_password(SERVICE_NAME, key_name, value)
        logger.info(f"Stored {key_name} in secure keychain")
        return True
    except KeyringError as e:
        logger.error(f"Failed to store {key_name} in keychain: {e}")
        return False


def list_api_keys() -> Dict[str, str]:
    """
    Report where each known key is configured.

    Returns:
        Dict mapping key names to "keychain", "env" or "not_set"
    """
    status = {}
    for key_name in KNOWN_KEYS:
        try:
            if keyring.get_password(SERVICE_NAME, key_name):
                status[key_name] = "keychain"
                continue
        except KeyringError as e:
            logger.debug(f"Keychain access failed for {key_name}: {e}")

        status[key_name] = "env" if os.environ.get(key_name) else "not_set"

    return status


def delete_api_key(key_name: str) -> bool:
    """Remove an API key from the OS keychain. Returns False if it was not stored."""
    try:
        keyring.delete_password(SERVICE_NAME, key_name)
        logger.info(f"Deleted {key_name} from secure keychain")
        return True
    except PasswordDeleteError:
        return False
    except KeyringError as e:
        logger.error(f"Failed to delete {key_name} from keychain: {e}")
        return False
