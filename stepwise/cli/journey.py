"""
Journey CLI commands - External interface layer
"""

import asyncio
from pathlib import Path
import click

from ..services.journey.journey_service import JourneyService
from ..core.exceptions import StepwiseError
from ..core.logger import setup_logger


@click.group()
def journey():
    """Journey definition commands"""
    pass


@journey.command()
@click.argument('file',
               type=click.Path(exists=True, path_type=Path))
@click.option('-v', '--verbose',
              is_flag=True,
              help='Enable verbose logging')
def validate(file: Path, verbose: bool):
    """Validate a YAML journey definition"""

    log_level = "DEBUG" if verbose else "INFO"
    setup_logger(log_level)

    asyncio.run(_validate_journey_async(file))


@journey.command()
@click.argument('file',
               type=click.Path(exists=True, path_type=Path))
@click.argument('answers',
               type=click.Path(exists=True, path_type=Path))
@click.option('--start',
              default=None,
              help='Step to start from (defaults to the first entry point)')
@click.option('-v', '--verbose',
              is_flag=True,
              help='Enable verbose logging')
def walk(file: Path, answers: Path, start: str, verbose: bool):
    """Walk a journey using a YAML file of answers per step"""

    log_level = "DEBUG" if verbose else "INFO"
    setup_logger(log_level)

    asyncio.run(_walk_journey_async(file, answers, start))


async def _validate_journey_async(file: Path):
    """Async journey validation implementation"""

    try:
        journey_service = JourneyService()
        journey_config = await journey_service.load_config(file)
        wizard = journey_service.build_wizard(journey_config)

        click.echo("Configuration is valid!")
        click.echo(f"Journey: {journey_config.name}")
        click.echo(f"Fields: {len(journey_config.fields)}")
        click.echo(f"Steps: {len(journey_config.steps)}")
        click.echo(f"Entry points: {', '.join(wizard.entry_points) or 'none'}")

    except StepwiseError as e:
        click.echo(f"Command failed: {e}", err=True)
        exit(1)


async def _walk_journey_async(file: Path, answers: Path, start: str):
    """Async journey walk implementation"""

    try:
        journey_service = JourneyService()
        journey_config = await journey_service.load_config(file)
        scripted = await journey_service.load_answers(answers)
        wizard = journey_service.build_wizard(journey_config)

        result = journey_service.walk(wizard, scripted, start=start)

        click.echo(f"Path: {' -> '.join(result.path)}")
        if result.success:
            click.echo("Journey completed successfully")
            if result.exit:
                click.echo(f"Exit URL: {result.exit}")
        else:
            click.echo(f"Journey failed: {result.error}", err=True)
            for key, error in result.errors.items():
                click.echo(f"  {key}: {error.type}", err=True)
            exit(1)

    except StepwiseError as e:
        click.echo(f"Command failed: {e}", err=True)
        exit(1)
