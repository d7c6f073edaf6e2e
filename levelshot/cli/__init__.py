"""
Levelshot Command Line Interface

Main CLI entry point for straightening property photos.
"""

import click
import logging
from typing import Optional

from levelshot.config import get_config_value, load_config
from levelshot.utils.logging import DEFAULT_FORMAT, setup_console_logging
from .straighten_commands import analyze, accept, cleanup, preview

logger = logging.getLogger(__name__)


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True),
              help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.pass_context
def main(ctx, config: Optional[str] = None, verbose: bool = False, quiet: bool = False):
    """
    Levelshot - automatic straightening for property photos

    Detects camera tilt from vertical architecture, stages rotated and
    cropped corrections for review, and applies the ones you accept.
    """
    if ctx.obj is None:
        ctx.obj = {}

    ctx.obj['config'] = load_config(config)

    level = get_config_value(ctx.obj['config'], 'logging.level', 'INFO')
    if verbose:
        level = 'DEBUG'
    elif quiet:
        level = 'ERROR'

    setup_console_logging(
        level=level,
        color=get_config_value(ctx.obj['config'], 'logging.color', True),
        log_file=get_config_value(ctx.obj['config'], 'logging.file'),
        fmt=get_config_value(ctx.obj['config'], 'logging.format', DEFAULT_FORMAT),
    )

    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet


main.add_command(analyze)
main.add_command(accept)
main.add_command(cleanup)
main.add_command(preview)


if __name__ == '__main__':
    main()
