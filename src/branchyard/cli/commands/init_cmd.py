from dataclasses import replace
from pathlib import Path

import click

from branchyard.cli.json_output import error_boundary
from branchyard.cli.output import machine_output, user_output
from branchyard.core.config import save_global_config
from branchyard.core.context import BranchyardContext
from branchyard.core.registry import WorkspaceRegistry


@click.command("init")
@click.argument("root", type=click.Path(path_type=Path, file_okay=False))
@click.option("--clone", "clone_url", help="Clone the shared repository from this URL.")
@click.option(
    "--adopt",
    type=click.Path(path_type=Path, file_okay=False, exists=True),
    help="Use an existing repository inside ROOT instead of cloning.",
)
@click.option(
    "--set-default",
    is_flag=True,
    help="Record ROOT as the default workspace in the global config.",
)
@click.pass_obj
@error_boundary
def init_cmd(
    ctx: BranchyardContext,
    root: Path,
    clone_url: str | None,
    adopt: Path | None,
    set_default: bool,
) -> None:
    """Create a workspace at ROOT holding the shared repository and build cache."""
    registry = WorkspaceRegistry.initialize(root, ctx.git, clone_url=clone_url, adopt=adopt)
    workspace = registry.workspace

    user_output(f"Initialized workspace at {click.style(str(workspace.root), fg='green')}")
    user_output(f"  repository:  {workspace.repo_path}")
    user_output(f"  build cache: {workspace.build_cache_dir}")
    user_output(f"  worktrees:   {workspace.worktrees_dir}")

    if set_default:
        save_global_config(replace(ctx.global_config, workspace_root=workspace.root))
        user_output("Recorded as the default workspace.")

    machine_output(str(workspace.root))
