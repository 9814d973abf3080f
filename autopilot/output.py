"""Coloured console messages shared by the commands."""

import sys
from typing import NoReturn

import click

from autopilot.errors import PreconditionError


def success(message: str) -> None:
    click.secho(f"✓ {message}", fg="green")


def info(message: str) -> None:
    click.secho(message, fg="cyan")


def warn(message: str) -> None:
    click.secho(message, fg="yellow")


def detail(message: str) -> None:
    click.secho(f"  {message}", fg="bright_black")


def hint(message: str) -> None:
    click.secho(f"  {message}", fg="yellow", err=True)


def error(message: str) -> None:
    click.secho(f"✗ {message}", fg="red", err=True)


def fail(exc: PreconditionError) -> NoReturn:
    error(exc.reason)
    if exc.hint:
        hint(exc.hint)
    sys.exit(1)
