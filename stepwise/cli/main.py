#!/usr/bin/env python3
"""
stepwise - journey definition CLI
Main entry point for validating and walking step journeys
"""

import click

from .journey import journey
from ..core.version import get_version

@click.group()
def cli():
    """stepwise - Multi-step journey validation and walk-through"""
    pass

@cli.command()
def version():
    """Show version information"""
    version_str = get_version()
    click.echo(f"stepwise version {version_str}")

# Add subcommand groups
cli.add_command(journey)

if __name__ == '__main__':
    cli()
