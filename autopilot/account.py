"""Connect, inspect and disconnect the GitHub account."""

import sys

import click

from autopilot import credentials, github
from autopilot.errors import CredentialError, GitHubError
from autopilot.output import detail, error, hint, info, success, warn


def _not_connected() -> None:
    warn("You are not currently connected to GitHub.")
    detail("Run `autopilot connect` to connect your account.")


@click.command("connect")
@click.option("--token", "-t", envvar="GITHUB_TOKEN", help="GitHub Personal Access Token (prompted for when omitted)")
def connect(token: str | None):
    """Connect your GitHub account with a Personal Access Token."""
    if not token:
        token = click.prompt("Personal Access Token (PAT) from GitHub", hide_input=True).strip()

    try:
        user = github.validate_token(token)
    except GitHubError as e:
        error(f"Could not verify token: {e}")
        sys.exit(1)

    if not user.valid:
        error("Invalid token! Failed to verify")
        sys.exit(1)

    try:
        credentials.save_current_token(token)
    except CredentialError as e:
        error(str(e))
        sys.exit(1)
    success(f"Connected as {user.username}")


@click.command("user")
def user():
    """Show the connected GitHub account."""
    info("Checking current user...")
    token = credentials.get_current_token()
    if not token:
        _not_connected()
        sys.exit(1)

    try:
        result = github.validate_token(token)
    except GitHubError as e:
        error(f"Failed to fetch user info: {e}")
        sys.exit(1)

    if not result.valid:
        error("Token is invalid or expired.")
        hint("Run `autopilot logout` then `autopilot connect` to reconnect.")
        sys.exit(1)

    success(f"Connected as: @{result.username}")
    if result.name:
        detail(f"Name: {result.name}")
    if result.email:
        detail(f"Email: {result.email}")


@click.command("logout")
def logout():
    """Forget the stored GitHub token."""
    info("Logging out...")
    if not credentials.get_current_token():
        _not_connected()
        return

    try:
        credentials.delete_current_token()
    except CredentialError as e:
        error(f"Failed to logout: {e}")
        sys.exit(1)
    success("Successfully logged out")
    detail("Run `autopilot connect` to connect again.")
