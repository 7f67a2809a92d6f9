# cli.py
from __future__ import annotations

import sys
from pathlib import Path

import click

from gitrunner.deploy.config import load_config
from gitrunner.dispatch import workdir_name
from gitrunner.errors import ConfigError
from gitrunner.model import BuildJob
from gitrunner.runner import run_job
from gitrunner.settings import DEPLOY_CONFIG_CANDIDATES, Settings, find_deploy_config
from gitrunner.ui.console import Console, set_console, get_console


def resolve_deployment(settings: Settings) -> Settings:
    """
    Make sure an enabled deployment has a config file.

    Without an explicit path the usual locations are searched. If nothing is
    found the operator is asked whether to continue with deployment disabled;
    declining exits.
    """
    console = get_console()

    if not settings.deploy_enabled or settings.deploy_config_path is not None:
        return settings

    console.print_info("Deployment enabled but no config file specified. Searching for config files...")
    found = find_deploy_config()
    if found is not None:
        console.print_info(f"Found config file: {found}")
        return settings.with_overrides(deploy_config_path=found)

    console.print_error(
        "No deployment config file found",
        "Deployment requires a config file.",
        details=["Looked for:", *(f"  {c}" for c in DEPLOY_CONFIG_CANDIDATES)],
    )
    if click.confirm("Disable deployment and continue?", default=True):
        console.print_info("Deployment disabled.")
        return settings.with_overrides(deploy_enabled=False)

    console.print_error(
        "Cannot proceed",
        "Cannot deploy without a config file.",
        suggestion="Provide one explicitly:\n  gitrunner serve --deploy --config deploy.yml",
    )
    sys.exit(1)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """gitrunner: build and deploy containers on every push."""
    # Initialize console with debug flag
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.option("--host", default=None, help="Bind address (default: $HOST or 0.0.0.0)")
@click.option("--port", default=None, type=int, help="Bind port (default: $PORT or 8080)")
@click.option("--config", "config_path", default=None, type=click.Path(path_type=Path), help="Path to deployment configuration file")
@click.option("--deploy/--no-deploy", default=None, help="Enable deployment after build (default: $ENABLE_ECS_DEPLOY)")
@click.option("--workers", default=None, type=int, help="Maximum number of jobs running at once")
@click.pass_context
def serve(ctx, host, port, config_path, deploy, workers):
    """Run the webhook server."""
    import uvicorn
    from gitrunner.webhook.main import create_app

    console = get_console()
    settings = Settings.from_env().with_overrides(
        host=host,
        port=port,
        deploy_config_path=config_path,
        deploy_enabled=deploy,
        max_workers=workers,
    )
    settings = resolve_deployment(settings)

    try:
        app = create_app(settings)
    except ConfigError as e:
        console.print_error("Invalid configuration", e.message)
        sys.exit(1)

    console.print_server_started(
        host=settings.host,
        port=settings.port,
        working_dir=str(settings.working_dir),
        deploy_enabled=settings.deploy_enabled,
        deploy_config=str(settings.deploy_config_path) if settings.deploy_config_path else None,
    )
    # uvicorn exits the process itself if the port cannot be bound
    uvicorn.run(app, host=settings.host, port=settings.port)


@cli.command()
@click.argument("clone_url")
@click.argument("commit_ref")
@click.option("--workdir", default=None, type=click.Path(path_type=Path), help="Root for job checkouts (default: $WORKING_DIR)")
@click.option("--config", "config_path", default=None, type=click.Path(path_type=Path), help="Path to deployment configuration file")
@click.option("--deploy/--no-deploy", default=None, help="Publish and roll out after the build")
@click.option("--keep-workdir", is_flag=True, default=False, help="Leave the checkout in place afterwards")
@click.pass_context
def build(ctx, clone_url, commit_ref, workdir, config_path, deploy, keep_workdir):
    """Run one build job in the foreground."""
    console = get_console()
    settings = Settings.from_env().with_overrides(
        working_dir=workdir,
        deploy_config_path=config_path,
        deploy_enabled=deploy,
        keep_workdir=keep_workdir or None,
    )
    settings = resolve_deployment(settings)

    job = BuildJob(
        clone_url=clone_url,
        commit_ref=commit_ref,
        working_dir=Path(settings.working_dir) / workdir_name(commit_ref),
        deploy_enabled=settings.deploy_enabled,
        deploy_config_path=settings.deploy_config_path,
    )

    try:
        result = run_job(job, settings)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)

    if result.status != "ok":
        sys.exit(1)


@cli.command("check-config")
@click.argument("path", type=click.Path(path_type=Path))
def check_config(path):
    """Load a deployment config file and list its services."""
    console = get_console()
    try:
        config = load_config(path)
    except ConfigError as e:
        console.print_error("Invalid deployment config", e.message, details=[f"{k}: {v}" for k, v in e.details.items()])
        sys.exit(1)

    registry = config.registry
    console.print_info(f"Provider: {config.provider}")
    console.print_info(f"Region: {registry.region}")
    console.print_info(f"Cluster: {registry.cluster}")
    console.print_info(f"Repository prefix: {registry.repository_prefix}")
    console.print_info(f"Services: {len(config.services)}")
    for name, svc in sorted(config.services.items()):
        console.print_info(
            f"  {name}: task={svc.task_definition} service={svc.service_name} container={svc.container_name}"
        )


if __name__ == "__main__":
    cli()
