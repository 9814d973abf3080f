"""Minimal GitHub REST client: token validation and repository creation."""

import logging
import os
from dataclasses import dataclass, field

import requests

from autopilot.errors import GitHubError, RepositoryExistsError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
TIMEOUT = 15


@dataclass
class TokenInfo:
    valid: bool
    username: str | None = None
    name: str | None = None
    email: str | None = None
    scopes: list[str] = field(default_factory=list)


@dataclass
class CreatedRepository:
    name: str
    clone_url: str
    html_url: str


def api_url() -> str:
    return os.environ.get("AUTOPILOT_GITHUB_API", DEFAULT_API_URL).rstrip("/")


def _headers(token: str) -> dict:
    return {
        "Authorization": f"Bearer {token}",
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }


def _error_message(response: requests.Response) -> str:
    try:
        return response.json().get("message", response.text)
    except ValueError:
        return response.text or response.reason


def validate_token(token: str) -> TokenInfo:
    """Look up the account behind a token.

    A 401 means the token is invalid or expired and yields ``valid=False``;
    any other failure (network, rate limit, server error) raises GitHubError.
    """
    try:
        response = requests.get(f"{api_url()}/user", headers=_headers(token), timeout=TIMEOUT)
    except requests.RequestException as e:
        raise GitHubError(None, f"Could not reach GitHub: {e}") from e

    if response.status_code == 401:
        logger.debug("Token rejected by GitHub")
        return TokenInfo(valid=False)
    if response.status_code != 200:
        raise GitHubError(response.status_code, _error_message(response))

    data = response.json()
    scopes_header = response.headers.get("X-OAuth-Scopes", "")
    scopes = [s for s in scopes_header.split(", ") if s]
    return TokenInfo(
        valid=True,
        username=data.get("login"),
        name=data.get("name"),
        email=data.get("email"),
        scopes=scopes,
    )


def create_repository(token: str, name: str, description: str = "", private: bool = True) -> CreatedRepository:
    payload = {"name": name, "private": private, "auto_init": False}
    if description:
        payload["description"] = description

    logger.debug("Creating repository %s (private=%s)", name, private)
    try:
        response = requests.post(
            f"{api_url()}/user/repos", json=payload, headers=_headers(token), timeout=TIMEOUT
        )
    except requests.RequestException as e:
        raise GitHubError(None, f"Could not reach GitHub: {e}") from e

    if response.status_code == 422:
        raise RepositoryExistsError(name, _error_message(response))
    if response.status_code not in (200, 201):
        raise GitHubError(response.status_code, _error_message(response))

    data = response.json()
    return CreatedRepository(name=data.get("name", name), clone_url=data["clone_url"], html_url=data["html_url"])
