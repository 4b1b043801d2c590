"""Remote bindings and the push gate."""

import click

from branchyard.cli.core import require_registry
from branchyard.cli.json_output import emit_json, error_boundary, format_option
from branchyard.cli.output import user_output
from branchyard.core.context import BranchyardContext
from branchyard.core.remote_policy import OperationKind, Permission


@click.group("remote")
def remote_group() -> None:
    """Inspect remote bindings and check what they permit."""
    pass


@remote_group.command("list")
@format_option
@click.pass_obj
@error_boundary
def list_cmd(ctx: BranchyardContext, output_format: str) -> None:
    """List bound remotes and git remotes with no binding."""
    registry = require_registry(ctx)
    bindings = registry.policy.bindings
    git_remotes = registry.git.list_remotes(registry.repository.path)
    unbound = sorted(name for name in git_remotes if registry.policy.get(name) is None)

    if output_format == "json":
        emit_json(
            {
                "bindings": [
                    {
                        "name": b.name,
                        "url": b.url,
                        "permission": b.permission.value,
                        "role": b.role.value,
                    }
                    for b in bindings
                ],
                "unbound": unbound,
            }
        )
        return

    for binding in bindings:
        color = "green" if binding.permission is Permission.READ_WRITE else "white"
        user_output(
            f"{click.style(binding.name, fg='cyan', bold=True)}  "
            f"{click.style(binding.permission.value, fg=color)}  "
            f"{binding.role.value}  {binding.url}"
        )
    for name in unbound:
        user_output(
            f"{click.style(name, fg='cyan')}  "
            + click.style("unbound (read-only)", fg="yellow")
            + f"  {git_remotes[name]}"
        )
    if not bindings and not unbound:
        user_output("No remotes.")


@remote_group.command("check")
@click.argument("remote")
@click.option(
    "--operation",
    type=click.Choice([kind.value for kind in OperationKind]),
    default=OperationKind.PUSH.value,
    show_default=True,
)
@format_option
@click.pass_obj
@error_boundary
def check_cmd(ctx: BranchyardContext, remote: str, operation: str, output_format: str) -> None:
    """Check whether OPERATION may target REMOTE. Exits non-zero when forbidden."""
    registry = require_registry(ctx)
    registry.policy.authorize(remote, OperationKind(operation))

    if output_format == "json":
        emit_json({"remote": remote, "operation": operation, "allowed": True})
        return
    user_output(f"{operation} to {click.style(remote, fg='cyan')} is allowed")


@remote_group.command("fetch")
@click.argument("remote")
@click.argument("ref", required=False)
@click.pass_obj
@error_boundary
def fetch_cmd(ctx: BranchyardContext, remote: str, ref: str | None) -> None:
    """Fetch REMOTE (optionally one REF) into the shared repository."""
    registry = require_registry(ctx)
    registry.policy.authorize(remote, OperationKind.FETCH)
    registry.git.fetch(registry.repository.path, remote, ref)
    user_output(f"Fetched {click.style(remote, fg='cyan')}{' ' + ref if ref else ''}")
