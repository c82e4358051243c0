"""FlexVolume command-line interface.

The kubelet runs the driver as ``<driver> <call> [args...]`` and reads one
JSON object from standard output.  Logical failures are reported in that
object, so every call exits zero.
"""

import functools
import os
from collections.abc import Callable
from pathlib import Path
from typing import override

import click
from safir.click import display_help

from .config import Config
from .constants import CONFIG_FILE, CONFIG_FILE_ENV_VAR
from .driver import FlexVolumeDriver
from .models import DriverResponse

__all__ = ["main"]


class DriverGroup(click.Group):
    """Command group answering unknown calls with ``Not Supported``.

    The kubelet tries optional calls such as ``attach`` and
    ``getvolumename`` and expects a JSON answer rather than a usage error.
    """

    @override
    def get_command(
        self, ctx: click.Context, cmd_name: str
    ) -> click.Command | None:
        command = super().get_command(ctx, cmd_name)
        if command is None:
            return _unsupported(cmd_name)
        return command


def _unsupported(cmd_name: str) -> click.Command:
    def callback(args: tuple[str, ...]) -> None:
        click.echo(DriverResponse.not_supported(cmd_name).to_json())

    return click.Command(
        cmd_name,
        callback=callback,
        params=[click.Argument(["args"], nargs=-1, type=click.UNPROCESSED)],
        context_settings={"ignore_unknown_options": True},
        hidden=True,
    )


def _driver_call[**P](
    func: Callable[P, DriverResponse],
) -> Callable[P, None]:
    """Print the response of a driver call, whatever happens."""

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> None:
        try:
            response = func(*args, **kwargs)
        except Exception as exc:
            # Logging may not be configured yet, and standard output
            # belongs to the kubelet, so the message is all we report.
            response = DriverResponse.failure(exc)
        click.echo(response.to_json())

    return wrapper


def _make_driver(ctx: click.Context) -> FlexVolumeDriver:
    """Construct the driver from the configuration named on the group."""
    config_file: Path | None = ctx.obj["config_file"]
    # Prefer config file from env var
    if env_config_path := os.getenv(CONFIG_FILE_ENV_VAR):
        config_file = Path(env_config_path)
    elif config_file == CONFIG_FILE and not config_file.exists():
        config_file = None

    config = Config.from_file(config_file)
    if ctx.obj["debug"]:
        config.debug = True
    config.configure_logging()
    return FlexVolumeDriver(config)


@click.group(
    cls=DriverGroup,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(message="%(version)s")
@click.option(
    "--config-file",
    "-c",
    help="Application configuration file",
    type=Path,
    default=CONFIG_FILE,
)
@click.option(
    "--debug",
    "-d",
    is_flag=True,
    help="Enable debug logging",
)
@click.pass_context
def main(ctx: click.Context, config_file: Path, *, debug: bool) -> None:
    """Kubernetes FlexVolume driver for workload log directories."""
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file
    ctx.obj["debug"] = debug


@main.command()
@click.argument("topic", default=None, required=False, nargs=1)
@click.argument("subtopic", default=None, required=False, nargs=1)
@click.pass_context
def help(ctx: click.Context, topic: str | None, subtopic: str | None) -> None:
    """Show help for any command."""
    display_help(main, ctx, topic, subtopic)


@main.command()
@click.pass_context
@_driver_call
def init(ctx: click.Context) -> DriverResponse:
    """Create driver directories and report capabilities."""
    return _make_driver(ctx).init()


@main.command(context_settings={"ignore_unknown_options": True})
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
@_driver_call
def mount(ctx: click.Context, args: tuple[str, ...]) -> DriverResponse:
    """Bind a log directory at a container path.

    Takes the container path and the JSON mount options.  Older kubelets
    pass a device argument between the two, which is ignored.
    """
    driver = _make_driver(ctx)
    if len(args) < 2:
        return DriverResponse.failure(
            f"mount: invalid args num, {list(args)}"
        )
    return driver.mount(args[0], args[-1])


@main.command()
@click.argument("args", nargs=-1)
@click.pass_context
@_driver_call
def unmount(ctx: click.Context, args: tuple[str, ...]) -> DriverResponse:
    """Unbind a container path and remove its log artifacts."""
    driver = _make_driver(ctx)
    if len(args) < 1:
        return DriverResponse.failure(
            f"unmount: invalid args num, {list(args)}"
        )
    return driver.unmount(args[0])
