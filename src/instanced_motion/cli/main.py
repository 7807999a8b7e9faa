"""
Command-Line Interface
======================

Single responsibility: Provide a user-friendly CLI for instanced animation.
"""

import click
from pathlib import Path
import sys

from instanced_motion.core.exceptions import InstancedMotionError
from instanced_motion.core.kernel import BLOCK_DIM
from instanced_motion.core.layout import (
    MAX_MAPPINGS,
    OBJECT_COUNT,
    UniformVelocitySampler,
    alternating_assignment,
    build_layout,
)
from instanced_motion.core.mesh_io import TemplateStore
from instanced_motion.core.resolver import RESOLVERS
from instanced_motion.core.validator import select_device
from instanced_motion.pipeline import AnimationConfig, default_template_paths, run_animation
from instanced_motion.utils.logging import get_logger

logger = get_logger(__name__)

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _template_paths(templates) -> list:
    return list(templates) if templates else default_template_paths()


@click.command()
@click.argument('templates', nargs=-1, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('-n', '--instances', type=int, default=OBJECT_COUNT, show_default=True,
              help='Number of animated instances')
@click.option('-f', '--frames', type=int, default=600, show_default=True,
              help='Number of frames to animate')
@click.option('--time-step', type=float, default=0.01, show_default=True,
              help='Animation time added per frame')
@click.option('--max-speed', type=float, default=1.0, show_default=True,
              help='Per-axis velocity bound')
@click.option('--seed', type=int, default=None, help='Seed for reproducible velocities')
@click.option('--resolver', type=click.Choice(sorted(RESOLVERS)), default='bisect',
              show_default=True, help='Vertex ownership resolver')
@click.option('--block-dim', type=int, default=BLOCK_DIM, show_default=True,
              help='Work units per kernel block')
@click.option('--gpu/--cpu', default=False, help='Use GPU acceleration (default: CPU)')
@click.option('--device', 'device_name', type=str, default=None,
              help='Explicit accelerator, e.g. cuda:1 (overrides --gpu/--cpu)')
@click.option('--reference', type=click.Path(path_type=Path), default=None,
              help='Reference dump; runs automated verification instead of display mode')
@click.option('-o', '--output', type=click.Path(path_type=Path), default=None,
              help='Output directory (default: results/)')
@click.option('-q', '--quiet', is_flag=True, help='Suppress output')
@click.option('--log-level',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              default='INFO', help='Logging level (default: INFO)')
def run(templates, instances, frames, time_step, max_speed, seed, resolver, block_dim,
        gpu, device_name, reference, output, quiet, log_level):
    """
    Animate instanced meshes on the accelerator.

    TEMPLATES are mesh template files assigned to instances round-robin.
    The bundled cube and pyramid are used when none are given.

    \b
    Examples:
        # Display mode on the default GPU
        instanced-motion run --gpu

        # Automated verification against a reference dump
        instanced-motion run --frames 1 --seed 0 --reference ref.bin

        # Custom templates on a specific device
        instanced-motion run a.obj b.obj --device cuda:1 --resolver linear
    """
    verbose = not quiet

    try:
        config = AnimationConfig(
            template_paths=_template_paths(templates),
            output_dir=output or Path('results'),
            instances=instances,
            frames=frames,
            time_step=time_step,
            max_speed=max_speed,
            seed=seed,
            resolver=resolver,
            device=select_device(gpu, device_name),
            block_dim=block_dim,
            reference_file=reference,
            verbose=verbose,
            log_level=log_level.upper(),
        )
    except InstancedMotionError as e:
        click.secho(f"\n✗ Configuration error: {e}", fg='red', bold=True)
        sys.exit(EXIT_FAILURE)

    try:
        result = run_animation(config)
    except KeyboardInterrupt:
        click.echo()
        click.secho("\n✗ Interrupted by user", fg='yellow')
        sys.exit(EXIT_INTERRUPTED)
    except InstancedMotionError as e:
        # Full traceback goes to the session log only
        logger.debug("Run aborted", exc_info=True)
        click.echo()
        click.secho(f"✗ Error: {e}", fg='red', bold=True)
        if log_level.upper() == 'DEBUG':
            import traceback
            click.echo()
            traceback.print_exc()
        sys.exit(EXIT_FAILURE)

    if not result.passed:
        click.secho(
            f"✗ Verification failed: {result.comparison.mismatches:,} of "
            f"{result.comparison.total:,} values differ",
            fg='red', bold=True
        )
        sys.exit(EXIT_FAILURE)

    if verbose:
        click.secho(f"✓ Success! Results saved to: {result.run_dir}", fg='green', bold=True)


@click.command()
@click.argument('templates', nargs=-1, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('-n', '--instances', type=int, default=OBJECT_COUNT, show_default=True,
              help='Number of instances to pack')
@click.option('--max-indices', type=int, default=MAX_MAPPINGS, show_default=True,
              help='Ceiling on the global index array length')
@click.option('--show', type=int, default=5, show_default=True,
              help='Number of instance ranges to list')
def inspect(templates, instances, max_indices, show):
    """
    Pack a scene on the host and print its layout.

    Nothing is allocated on the accelerator.
    """
    try:
        store = TemplateStore()
        for path in _template_paths(templates):
            store.load(path)

        layout = build_layout(
            store,
            alternating_assignment(instances, len(store)),
            UniformVelocitySampler(seed=0),
            max_indices=max_indices,
            max_instances=OBJECT_COUNT,
        )
    except InstancedMotionError as e:
        click.secho(f"✗ Error: {e}", fg='red', bold=True)
        sys.exit(EXIT_FAILURE)

    click.secho("Templates", fg='cyan', bold=True)
    for template_id, template in enumerate(store):
        click.echo(
            f"  [{template_id}] {template.name}: {template.vertex_count:,} vertices, "
            f"{template.triangle_count:,} triangles, bbox {template.bounding_box_length:.3f}"
        )

    click.secho("Layout", fg='cyan', bold=True)
    click.echo(f"  Instances: {layout.instance_count:,}")
    click.echo(f"  Vertices: {layout.total_vertices:,}")
    click.echo(f"  Indices: {layout.total_indices:,} / {max_indices:,}")

    for i in range(min(show, layout.instance_count)):
        start, stop = layout.vertex_range(i)
        instance = layout.instances[i]
        click.echo(
            f"  #{i}: {store.get(instance.template_id).name} "
            f"vertices [{start:,}, {stop:,})"
        )


@click.group()
@click.version_option(version='1.0.0', prog_name='instanced-motion')
def cli():
    """
    Instanced Motion - GPU animation of many rigid mesh instances.

    \b
    Modes:
      Display (default):  animate and report frame statistics
      Verification:       animate, dump the buffer, compare (--reference)

    \b
    For more help on a specific command:
        instanced-motion run --help
        instanced-motion inspect --help
    """
    pass


cli.add_command(run)
cli.add_command(inspect)


def main():
    """Entry point for console_scripts."""
    cli()


if __name__ == '__main__':
    main()
