# configkit/cli.py

import click

from .builder import Builder
from .exceptions import ConfigKitError


def _split_pair(pair: str) -> tuple:
    key, sep, value = pair.partition("=")
    if not sep or not key:
        raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}")
    return key, value


def _values(ctx):
    try:
        return ctx.obj["builder"].values()
    except ConfigKitError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        ctx.exit(1)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-f", "--file", "files", multiple=True, help="Flat key=value file to merge (repeatable)")
@click.option("--dotenv", "dotenv_files", multiple=True, help=".env file to merge (repeatable)")
@click.option("-e", "--env-prefix", help="Merge env vars starting with this prefix")
@click.option("-s", "--set", "pairs", multiple=True, help="KEY=VALUE override (repeatable)")
@click.pass_context
def cli(ctx, files, dotenv_files, env_prefix, pairs):
    """
    configkit CLI: inspect merged configuration values.

    Sources are merged in this order, later ones winning:
    files, dotenv files, environment, --set pairs.

      • dump
      • get      KEY
      • exists   KEY
      • explain  KEY
    """
    builder = Builder(track_provenance=True)
    for path in files:
        builder.merge_file(path)
    for path in dotenv_files:
        builder.merge_dotenv(path)
    if env_prefix:
        builder.merge_environ(env_prefix)
    for pair in pairs:
        builder.set(*_split_pair(pair))

    ctx.obj = {"builder": builder}


@cli.command()
@click.pass_context
def dump(ctx):
    """Print every resolved value as key=value lines."""
    click.echo(_values(ctx).to_lines(), nl=False)


@cli.command()
@click.argument("key")
@click.pass_context
def get(ctx, key):
    """Print the resolved value of KEY."""
    value, found = _values(ctx).lookup(key)
    if not found:
        click.secho(f"Key not found: {key}", fg="yellow", err=True)
        ctx.exit(1)
    click.echo(value)


@cli.command()
@click.argument("key")
@click.pass_context
def exists(ctx, key):
    """Exit 0 if KEY has a value, 1 otherwise."""
    _, found = _values(ctx).lookup(key)
    click.echo("true" if found else "false")
    ctx.exit(0 if found else 1)


@cli.command()
@click.argument("key")
@click.pass_context
def explain(ctx, key):
    """Show which sources set KEY, oldest first."""
    builder = ctx.obj["builder"]
    if builder.error() is not None:
        click.secho(f"Error: {builder.error()}", fg="red", err=True)
        ctx.exit(1)
    click.echo(builder.provenance.explain(key))


if __name__ == "__main__":
    cli()
