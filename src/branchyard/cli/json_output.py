"""JSON output and the error boundary shared by every command."""

import json
from collections.abc import Callable
from dataclasses import asdict, is_dataclass
from enum import Enum
from functools import wraps
from pathlib import Path
from typing import Any

import click
from pydantic import BaseModel, ConfigDict, Field

from branchyard.cli.output import machine_output, user_output
from branchyard.core.errors import WorkspaceError, WorkspaceUnreadable


class ErrorResponse(BaseModel):
    """Pydantic model for error JSON responses.

    Attributes:
        error: Stable error kind (e.g., "BranchInUse")
        message: Human-readable description
        exit_code: Exit code for the process
    """

    model_config = ConfigDict(strict=True)

    error: str
    message: str
    exit_code: int = Field(default=1, ge=0, le=255)


def _serialize_for_json(obj: Any) -> Any:
    """Recursively serialize Path, Enum and dataclass values for JSON."""
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        return _serialize_for_json(asdict(obj))
    if isinstance(obj, dict):
        return {key: _serialize_for_json(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_serialize_for_json(item) for item in obj]
    return obj


def emit_json(data: Any) -> None:
    """Output JSON data to stdout for machine consumption."""
    machine_output(json.dumps(_serialize_for_json(data), indent=2))


def exit_code_for(error: WorkspaceError) -> int:
    # The workspace root itself is unusable; nothing else can be trusted
    if isinstance(error, WorkspaceUnreadable):
        return 2
    return 1


def emit_error(kind: str, message: str, exit_code: int, *, as_json: bool) -> None:
    """Report a failure in the requested format and exit.

    Raises:
        SystemExit: Always
    """
    if as_json:
        response = ErrorResponse(error=kind, message=message, exit_code=exit_code)
        emit_json(response.model_dump(mode="json"))
    else:
        user_output(click.style("Error: ", fg="red") + message)
    raise SystemExit(exit_code)


def error_boundary(func: Callable) -> Callable:
    """Decorator turning domain and git failures into a styled error and exit status.

    Inspects the command's kwargs for `output_format`; in JSON mode the error
    is emitted as an ErrorResponse on stdout.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        as_json = kwargs.get("output_format") == "json"
        try:
            return func(*args, **kwargs)
        except WorkspaceError as e:
            emit_error(e.kind, e.message, exit_code_for(e), as_json=as_json)
        except RuntimeError as e:
            # Version-control subprocess failures, already carrying their context
            emit_error("CommandFailed", str(e), 1, as_json=as_json)

    return wrapper


format_option = click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format.",
)
