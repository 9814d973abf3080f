"""GitHub token storage in the OS keyring."""

import logging

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from autopilot.errors import CredentialError

logger = logging.getLogger(__name__)

SERVICE_NAME = "autopilot-cli"
CURRENT_USER = "default"


def save_token(username: str, token: str) -> None:
    try:
        keyring.set_password(SERVICE_NAME, username, token)
    except KeyringError as e:
        raise CredentialError(f"Failed to save token: {e}") from e


def get_token(username: str) -> str | None:
    try:
        return keyring.get_password(SERVICE_NAME, username)
    except KeyringError as e:
        logger.warning("Could not read token for %s: %s", username, e)
        return None


def delete_token(username: str) -> None:
    try:
        keyring.delete_password(SERVICE_NAME, username)
    except (PasswordDeleteError, KeyringError) as e:
        raise CredentialError(f"Failed to delete token: {e}") from e


def has_token(username: str) -> bool:
    return get_token(username) is not None


# Single-account helpers; every command reads and writes this one slot.
def save_current_token(token: str) -> None:
    save_token(CURRENT_USER, token)


def get_current_token() -> str | None:
    return get_token(CURRENT_USER)


def delete_current_token() -> None:
    delete_token(CURRENT_USER)
