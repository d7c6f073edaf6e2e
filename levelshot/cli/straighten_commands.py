"""
Levelshot straightening CLI commands.
Analyze a property's photos, review staged corrections and promote them.
"""

import click
import json
from pathlib import Path
from typing import Optional, Tuple

from levelshot.config import PROPERTY_STATUSES, get_property_images_dir, update_config_value
from levelshot.core import AcceptedCorrection, PerspectiveCorrector

DECISION_ICONS = {
    'accepted': '🔄',
    'already_straight': '✅',
    'no_correction': '➖',
    'needs_manual_review': '⚠️ ',
}


def _build_corrector(ctx, seed: Optional[int] = None) -> PerspectiveCorrector:
    config = ctx.obj.get('config', {})
    if seed is not None:
        update_config_value(config, 'perspective.random_seed', seed)
    if ctx.obj.get('quiet'):
        update_config_value(config, 'batch.show_progress', False)
    return PerspectiveCorrector(config)


@click.command('analyze')
@click.argument('directory', required=False,
                type=click.Path(file_okay=False, dir_okay=True))
@click.option('--property-id', '-p', required=True, help='Property identifier used for staging')
@click.option('--folder', '-f', help='Property folder, resolved against the base folder for --status')
@click.option('--status', '-s', type=click.Choice(PROPERTY_STATUSES, case_sensitive=False),
              help='Property status selecting the base folder')
@click.option('--json', 'as_json', is_flag=True, help='Print results as JSON')
@click.option('--seed', type=int, help='Seed RANSAC sampling for reproducible results')
@click.pass_context
def analyze(ctx, directory: Optional[str], property_id: str, folder: Optional[str] = None,
            status: Optional[str] = None, as_json: bool = False, seed: Optional[int] = None):
    """
    Detect tilt in a property's photos and stage corrected copies.

    DIRECTORY: Folder of images; omit it and pass --folder/--status to use
    the configured property folders instead.
    """
    quiet = ctx.obj.get('quiet', False)

    try:
        if directory is None:
            if not folder or not status:
                raise click.UsageError("Pass DIRECTORY or both --folder and --status")
            directory = str(get_property_images_dir(ctx.obj.get('config', {}), folder, status))

        corrector = _build_corrector(ctx, seed)
        results = corrector.analyze_and_correct(directory, property_id)
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"❌ {e}", err=True)
        ctx.exit(1)
        return

    if as_json:
        payload = [
            {k: v for k, v in result.to_dict().items() if k != 'corrected_preview_base64'}
            for result in results
        ]
        click.echo(json.dumps(payload, indent=2))
        return

    if not results:
        click.echo("❌ No images found in directory", err=True)
        return

    for result in results:
        icon = DECISION_ICONS.get(result.decision, '  ')
        if result.error:
            click.echo(f"❌ {result.original_filename}: {result.error}")
        else:
            click.echo(f"{icon} {result.original_filename}: {result.decision} "
                       f"rotation={result.rotation_applied:+.2f}° "
                       f"confidence={result.confidence:.2f}")

    if not quiet and corrector.last_stats is not None:
        corrector.last_stats.print_summary()

    staged = sum(1 for r in results if r.corrected_temp_path)
    if staged and not quiet:
        click.echo(f"\n📁 {staged} corrected images staged in {corrector.staging.path_for(property_id)}")
        click.echo(f"   Run 'levelshot accept -p {property_id} --all' to apply them")


@click.command('accept')
@click.argument('filenames', nargs=-1)
@click.option('--property-id', '-p', required=True, help='Property identifier used for staging')
@click.option('--all', 'accept_all', is_flag=True, help='Accept every staged correction')
@click.pass_context
def accept(ctx, filenames: Tuple[str, ...], property_id: str, accept_all: bool = False):
    """
    Overwrite originals with their staged corrections.

    FILENAMES: Original filenames to accept; staged corrections not listed
    are discarded.
    """
    if not filenames and not accept_all:
        click.echo("❌ Pass filenames to accept or --all", err=True)
        ctx.exit(1)
        return

    corrector = _build_corrector(ctx)
    try:
        entries = corrector.staging.read_manifest(property_id)
    except FileNotFoundError as e:
        click.echo(f"❌ {e}", err=True)
        ctx.exit(1)
        return

    wanted = set(filenames)
    corrections = [
        AcceptedCorrection(original_path=entry['original_path'],
                           corrected_temp_path=entry['corrected_temp_path'])
        for entry in entries
        if entry.get('corrected_temp_path') and (accept_all or entry['original_filename'] in wanted)
    ]

    result = corrector.accept_corrections(corrections, property_id)
    if result.success and not result.error:
        click.echo(f"✅ {result.message}")
    else:
        click.echo(f"⚠️  {result.message or 'No corrections applied'}", err=True)
        for error in result.errors:
            click.echo(f"   - {error}", err=True)
        if not result.success:
            ctx.exit(1)


@click.command('cleanup')
@click.option('--property-id', '-p', help='Only discard staging for this property')
@click.pass_context
def cleanup(ctx, property_id: Optional[str] = None):
    """Discard staged corrections without applying them."""
    corrector = _build_corrector(ctx)
    corrector.cleanup_staging(property_id)
    target = f"property {property_id}" if property_id else "all properties"
    click.echo(f"🧹 Cleaned up staged corrections for {target}")


@click.command('preview')
@click.argument('image', type=click.Path(exists=True, dir_okay=False))
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Write base64 preview to file')
@click.pass_context
def preview(ctx, image: str, output: Optional[str] = None):
    """Produce a base64 JPEG preview of an original for comparison."""
    corrector = _build_corrector(ctx)
    encoded = corrector.original_preview(image)
    if output:
        Path(output).write_text(encoded)
        click.echo(f"💾 Preview written to {output}")
    else:
        click.echo(encoded)
