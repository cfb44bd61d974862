"""
Root Typer application for the ``node-lifecycle`` CLI.

Operator commands for inspecting the registry and running the same
deregistration the Lambda runs, plus the boot-time ``register`` command
executed by each node's user data.
"""

from __future__ import annotations

import typer
from typer import Typer

from node_lifecycle.core.errors import LifecycleError

app = Typer(
    name="node-lifecycle",
    help="node-lifecycle: keep the Scalelite registry in step with the BBB Auto Scaling group.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("bbb-node-lifecycle")
        except PackageNotFoundError:
            from node_lifecycle import __version__ as v
        typer.echo(f"node-lifecycle {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """node-lifecycle CLI: registry inspection, deregistration and node registration."""


# ── Registry ─────────────────────────────────────────────────────────────


@app.command("entries")
def entries(json_out: bool = typer.Option(False, "--json")) -> None:
    """List every entry the registry currently dispatches to."""
    from node_lifecycle.cli.utils import cli_settings, fail, output
    from node_lifecycle.lifecycle.factory import build_components

    settings = cli_settings()
    components = build_components(settings)
    try:
        listed = components.registry.list_entries(components.secrets.fetch())
    except LifecycleError as exc:
        fail(exc)
    finally:
        components.close()
    output(listed, as_json=json_out, title="Registry entries")


@app.command("resolve")
def resolve(
    instance_id: str = typer.Argument(..., help="EC2 instance id"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show the registration URL an instance is expected to use."""
    from node_lifecycle.cli.utils import cli_settings, fail, output
    from node_lifecycle.lifecycle.factory import build_components

    settings = cli_settings()
    components = build_components(settings)
    try:
        identity = components.resolver.resolve(instance_id)
    except LifecycleError as exc:
        fail(exc)
    finally:
        components.close()
    output(identity, as_json=json_out, title="Identity")


# ── Deregistration ───────────────────────────────────────────────────────


@app.command("deregister")
def deregister(
    instance_id: str = typer.Argument(..., help="EC2 instance id"),
    hook: str | None = typer.Option(None, "--hook", help="Lifecycle hook to complete"),
    group: str | None = typer.Option(None, "--group", help="Auto Scaling group of the hook"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Match but do not delete"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Deregister an instance; with --hook/--group also complete its lifecycle action."""
    from node_lifecycle.cli.utils import cli_settings, output
    from node_lifecycle.lifecycle.factory import build_bridge, build_components, build_reconciler
    from node_lifecycle.lifecycle.notification import TerminationNotification
    from node_lifecycle.reconcile.states import ReconciliationOutcome

    if (hook is None) != (group is None):
        raise typer.BadParameter("--hook and --group must be given together")
    if dry_run and hook is not None:
        raise typer.BadParameter("--dry-run cannot complete a lifecycle action")

    settings = cli_settings()
    components = build_components(settings)
    try:
        if hook is not None and group is not None:
            notification = TerminationNotification(
                instance_id=instance_id, hook_name=hook, group_name=group
            )
            handled = build_bridge(components, settings).handle(notification)
            report = handled.report
            if not handled.reported:
                output({**report.to_dict(), "reported": False}, as_json=json_out, title="Deregistration")
                raise typer.Exit(code=1)
        else:
            report = build_reconciler(components, settings).reconcile(instance_id, dry_run=dry_run)
    finally:
        components.close()

    output(report, as_json=json_out, title="Deregistration")
    if report.outcome is ReconciliationOutcome.ABANDON:
        raise typer.Exit(code=1)


# ── Registration agent ───────────────────────────────────────────────────


@app.command("register")
def register(
    node_secret: str = typer.Option(
        ..., "--node-secret", envvar="BBB_SECRET", help="This node's BigBlueButton API secret"
    ),
    hostname: str | None = typer.Option(
        None, "--hostname", help="Private DNS name (default: instance metadata local-hostname)"
    ),
    load_multiplier: float | None = typer.Option(None, "--load-multiplier"),
    enable: bool = typer.Option(True, "--enable/--no-enable", help="Enable the entry after adding"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Register this node with the registry (idempotent); run from user data at boot."""
    import httpx

    from node_lifecycle.agent.metadata import InstanceMetadata
    from node_lifecycle.agent.registration import RegistrationAgent
    from node_lifecycle.cli.utils import cli_settings, fail, output
    from node_lifecycle.core.secrets import SecretValue
    from node_lifecycle.lifecycle.factory import build_components

    settings = cli_settings()
    components = build_components(settings)
    with httpx.Client() as imds_http:
        agent = RegistrationAgent(
            components.registry,
            components.secrets,
            metadata=InstanceMetadata(imds_http),
            api_scheme=settings.node_api_scheme,
            api_path=settings.node_api_path,
        )
        try:
            result = agent.register(
                SecretValue(node_secret),
                hostname=hostname,
                load_multiplier=load_multiplier,
                enable=enable,
            )
        except LifecycleError as exc:
            fail(exc)
        finally:
            components.close()
    output(result, as_json=json_out, title="Registration")
