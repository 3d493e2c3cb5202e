"""Command line interface for sitepipe."""
import asyncio
import logging

import click

from sitepipe.config import BuildMode, Config, ConfigurationError, load_config
from sitepipe.deploy import deploy as deploy_site
from sitepipe.orchestrator import Orchestrator
from sitepipe.results import DeployError
from sitepipe.server import serve
from sitepipe.watcher import Watcher

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(levelname)s:\t%(name)s - %(message)s'
    )


def _run_forever(coro) -> None:
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        logger.info("Stopped.")


async def _develop(config: Config) -> None:
    """Build once, then serve and watch until one of them stops."""
    orchestrator = Orchestrator(config)
    await orchestrator.build()

    tasks = [
        asyncio.create_task(serve(config)),
        asyncio.create_task(Watcher(config, orchestrator).run()),
    ]
    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


@click.group(invoke_without_command=True)
@click.option(
    "--env",
    type=click.Choice(["dev", "development", "prod", "production"]),
    default="dev",
    show_default=True,
    help="Build mode; prod enables image optimization.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Config file (defaults to SITEPIPE_CONFIG or ./sitepipe.yaml).",
)
@click.option("--profile", default=None, help="Config profile to apply.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, env: str, config_path: str | None, profile: str | None, verbose: bool):
    """Build, serve, watch and deploy a static site."""
    setup_logging(verbose)
    try:
        ctx.obj = load_config(config_path, profile=profile, mode=BuildMode.from_env(env))
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    if ctx.invoked_subcommand is None:
        ctx.invoke(default)


def _pipeline_command(name: str, help_text: str) -> click.Command:
    @click.pass_obj
    def command(config: Config):
        asyncio.run(Orchestrator(config).run_pipeline(name))

    return click.command(name=name, help=help_text)(command)


cli.add_command(_pipeline_command("css", "Compile stylesheets."))
cli.add_command(_pipeline_command("js", "Copy scripts."))
cli.add_command(_pipeline_command("img", "Copy images (optimized with --env prod)."))


@cli.command()
@click.pass_context
def jekyll(ctx: click.Context):
    """Build assets, then run the site generator."""
    result = asyncio.run(Orchestrator(ctx.obj).build())
    ctx.exit(1 if result.exit_code is None else result.exit_code)


cli.add_command(jekyll, name="build")


@cli.command()
@click.pass_obj
def server(config: Config):
    """Serve the generated site."""
    _run_forever(serve(config))


@cli.command()
@click.pass_obj
def watch(config: Config):
    """Rebuild whenever sources change."""
    _run_forever(Watcher(config, Orchestrator(config)).run())


@cli.command()
@click.pass_context
def deploy(ctx: click.Context):
    """Build the site and force-push it to the hosting branch."""
    config = ctx.obj
    result = asyncio.run(Orchestrator(config).build())
    if not result.ok:
        ctx.exit(1 if not result.exit_code else result.exit_code)

    try:
        remote = deploy_site(config)
    except DeployError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Deployed to {remote}")


@cli.command()
@click.pass_obj
def default(config: Config):
    """Build, then serve and watch."""
    _run_forever(_develop(config))


def main() -> None:
    """Main entry point."""
    cli(prog_name="sitepipe")


if __name__ == "__main__":
    main()
