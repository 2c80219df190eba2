import click


@click.group()
def main() -> None:
    """wsmanager - Workspace lifecycle controller."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from WSMAN_HOST or 0.0.0.0).")
@click.option("--port", default=None, type=int, help="Bind port (default: from WSMAN_PORT or 8080).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def run(host: str | None, port: int | None, reload: bool) -> None:
    """Start the controllers and the status API."""
    import uvicorn

    from wsmanager.controller.settings import WSManagerSettings

    settings = WSManagerSettings()

    uvicorn.run(
        "wsmanager.controller.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
        # Leave in-flight reconcile passes time to hit their own deadline.
        timeout_graceful_shutdown=int(settings.reconcile_timeout.total_seconds()) + 5,
    )


@main.command()
def config() -> None:
    """Print the resolved settings as JSON."""
    from wsmanager.controller.settings import WSManagerSettings

    settings = WSManagerSettings()
    click.echo(settings.model_dump_json(indent=2))
    click.echo(f"# timeout reconcile interval: {settings.reconcile_interval}")


@main.command("check-timeout")
@click.argument("workspace_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--pod", "pod_file", type=click.Path(exists=True, dir_okay=False), help="Pod JSON (for stopping workspaces).")
@click.option("--last-activity", default=None, help="Last activity as ISO-8601 or epoch seconds.")
def check_timeout(workspace_file: str, pod_file: str | None, last_activity: str | None) -> None:
    """Evaluate the timeout policy for a workspace JSON file.

    Exits with status 1 if the workspace has timed out.
    """
    from datetime import UTC, datetime
    from pathlib import Path

    from pydantic import ValidationError

    from wsmanager.controller.activity.redis import parse_timestamp
    from wsmanager.controller.models.pod import Pod
    from wsmanager.controller.models.workspace import Workspace
    from wsmanager.controller.settings import WSManagerSettings
    from wsmanager.controller.timeout.policy import is_workspace_timed_out

    settings = WSManagerSettings()
    try:
        workspace = Workspace.model_validate_json(Path(workspace_file).read_text(encoding="utf-8"))
        pod = Pod.model_validate_json(Path(pod_file).read_text(encoding="utf-8")) if pod_file else None
    except ValidationError as e:
        msg = f"Invalid workspace or pod JSON: {e.error_count()} error(s)\n{e}"
        raise click.BadParameter(msg) from e

    activity = None
    if last_activity is not None:
        activity = parse_timestamp(last_activity)
        if activity is None:
            msg = f"Cannot parse --last-activity {last_activity!r}"
            raise click.BadParameter(msg)

    reason = is_workspace_timed_out(
        workspace,
        pod,
        settings.timeouts,
        last_activity=activity,
        now=datetime.now(UTC),
    )
    if not reason:
        click.echo(f"{workspace.id}: not timed out (phase={workspace.phase or '<unset>'})")
        return
    click.echo(f"{workspace.id}: {reason}")
    raise SystemExit(1)


if __name__ == "__main__":
    main()
