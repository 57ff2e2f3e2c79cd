import json
import logging
import shutil
import sys
from pathlib import Path

import click

import ocifetch
from ocifetch.authn import ANONYMOUS, DefaultKeychain


def _digest(ctx, param, value: str) -> ocifetch.Digest:
    try:
        return ocifetch.Digest.parse(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


class Session:
    def __init__(self, anonymous: bool = False, insecure: bool = False, debug=False):
        if debug:
            logging.basicConfig(level=logging.DEBUG)
        self.anonymous = anonymous
        self.insecure = insecure

    def image(self, reference: str) -> ocifetch.RemoteImage:
        ref = ocifetch.Reference.from_string(reference, insecure=self.insecure)
        return ocifetch.image(ref, auth=ANONYMOUS if self.anonymous else None)


@click.group()
@click.option("--anonymous", help="Do not look up credentials", is_flag=True)
@click.option("--insecure", help="Use plain HTTP", is_flag=True)
@click.option("-d", "--debug", help="Debug output", is_flag=True)
@click.pass_context
def cli(ctx, anonymous, insecure, debug):
    ctx.obj = Session(anonymous=anonymous, insecure=insecure, debug=debug)


@cli.command()
@click.argument("reference")
@click.pass_obj
def manifest(obj: Session, reference: str):
    """Print the manifest of an image."""
    with obj.image(reference) as img:
        click.echo(img.raw_manifest().decode("utf-8"))


@cli.command()
@click.argument("reference")
@click.pass_obj
def config(obj: Session, reference: str):
    """Print the config file of an image."""
    with obj.image(reference) as img:
        click.echo(img.raw_config_file().decode("utf-8"))


@cli.command()
@click.argument("reference")
@click.argument("digest", callback=_digest)
@click.option(
    "--output",
    help="Output file, stdout by default",
    default=None,
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
)
@click.pass_obj
def blob(obj: Session, reference: str, digest: ocifetch.Digest, output: Path | None):
    """Download a blob of an image."""
    with obj.image(reference) as img:
        with img.blob(digest) as body:
            if output is None:
                shutil.copyfileobj(body, sys.stdout.buffer)
            else:
                with output.open("wb") as f:
                    shutil.copyfileobj(body, f)
    if output is not None:
        click.echo(f"Done downloading: {output}")


@cli.command()
@click.argument("registry")
def auth(registry: str):
    """Show which credentials are used for a registry."""
    authenticator = DefaultKeychain.resolve(registry)
    click.echo(json.dumps({"registry": registry, "auth": repr(authenticator)}))


def main():
    try:
        cli()
    except ocifetch.RegistryError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
