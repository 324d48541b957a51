"""Core CLI functionality."""

from __future__ import annotations

import typer


def raise_error(txt: str):
    typer.echo(typer.style("Error: " + str(txt), fg="red"), err=True)
    raise typer.Exit(1)


def warn(txt: str, prefix: str = "Warning: "):
    typer.echo(typer.style(prefix + str(txt), fg="yellow"), err=True)


def parse_key_values(pairs: list[str] | None) -> dict[str, str]:
    """Parse ``key=value`` strings from repeated CLI options."""
    res = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise_error(f"Invalid key-value pair '{pair}'; expected key=value")
        key, value = pair.split("=", 1)
        res[key.strip()] = value
    return res
