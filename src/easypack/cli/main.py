"""Command line entry point: ``easypack pack|unpack|list|info``."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import click

from easypack import __version__
from easypack.api import pack_files, unpack_files
from easypack.config import EasypackConfig
from easypack.core.errors import EasypackError
from easypack.core.unpacker import Unpacker
from easypack.utils.logging import configure_logging, get_logger, log_context

PAIRS_USAGE = "Arguments must be `data name` `file` `data name` `file` ..."

logger = get_logger(__name__)


def _pairs(args: Sequence[str]) -> List[Tuple[str, str]]:
    if not args or len(args) % 2 != 0:
        raise click.UsageError(PAIRS_USAGE)
    return [(args[i], args[i + 1]) for i in range(0, len(args), 2)]


@click.group()
@click.version_option(__version__, prog_name="easypack")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML configuration file (defaults to EASYPACK_* environment variables).",
)
@click.option("--log-level", default=None, help="Override the configured log level.")
@click.option("--log-json/--no-log-json", default=None, help="Render logs as JSON.")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[str],
    log_level: Optional[str],
    log_json: Optional[bool],
) -> None:
    """Pack many files into one container, and get them back out."""
    config = EasypackConfig.load(config_path)
    updates = {}
    if log_level is not None:
        updates["log_level"] = log_level
    if log_json is not None:
        updates["log_json"] = log_json
    if updates:
        config = EasypackConfig(**{**config.model_dump(), **updates})

    configure_logging(level=config.log_level, json_output=config.log_json)
    ctx.obj = config


@cli.command()
@click.argument("outfile", type=click.Path(dir_okay=False))
@click.argument("args", nargs=-1)
@click.pass_obj
def pack(config: EasypackConfig, outfile: str, args: Tuple[str, ...]) -> None:
    """Pack NAME FILE pairs into OUTFILE."""
    pairs = _pairs(args)
    with log_context(container=outfile):
        try:
            size = pack_files(outfile, pairs, copy_chunk_size=config.copy_chunk_size)
        except (EasypackError, OSError) as exc:
            logger.error("pack_failed", error=str(exc))
            raise click.ClickException(str(exc)) from exc
    click.echo(f"Packed {len(pairs)} entries into {outfile} ({size:,} bytes)")


@cli.command()
@click.argument("infile", type=click.Path(dir_okay=False))
@click.argument("args", nargs=-1)
@click.pass_obj
def unpack(config: EasypackConfig, infile: str, args: Tuple[str, ...]) -> None:
    """Extract NAME FILE pairs from INFILE."""
    pairs = _pairs(args)
    with log_context(container=infile):
        try:
            missing = unpack_files(
                infile,
                pairs,
                copy_chunk_size=config.copy_chunk_size,
                max_gap_size=config.max_gap_size,
            )
        except (EasypackError, OSError) as exc:
            logger.error("unpack_failed", error=str(exc))
            raise click.ClickException(str(exc)) from exc

    if missing:
        click.echo("Not found in input file:", err=True)
        for name in missing:
            click.echo(f"- {name}", err=True)
        raise click.exceptions.Exit(1)


def _open(infile: str) -> Unpacker:
    try:
        return Unpacker.from_path(infile)
    except (EasypackError, OSError) as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command(name="list")
@click.argument("infile", type=click.Path(dir_okay=False))
def list_entries(infile: str) -> None:
    """List entry names and sizes in INFILE, in table-of-contents order."""
    with _open(infile) as unpacker:
        for name, length in unpacker.list():
            click.echo(f"{name}\t{length}")


@cli.command()
@click.argument("infile", type=click.Path(dir_okay=False))
def info(infile: str) -> None:
    """Show format version and size statistics for INFILE."""
    with _open(infile) as unpacker:
        stats = unpacker.stats()
    click.echo(f"version:   {stats.version}")
    click.echo(f"entries:   {stats.entry_count}")
    click.echo(f"data:      {stats.data_size_bytes:,} bytes")
    click.echo(f"container: {stats.container_size_bytes:,} bytes")


def main() -> None:
    cli(prog_name="easypack")


if __name__ == "__main__":
    main()
