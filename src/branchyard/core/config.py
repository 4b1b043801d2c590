"""Global and workspace configuration.

Global config lives in ~/.branchyard/config.toml and names the default
workspace. Workspace config lives in <root>/branchyard.toml and describes the
layout, the shared build cache and the remote bindings.

Both are read with tomllib into frozen dataclasses and written with tomlkit
so hand edits and comments survive.
"""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import tomlkit

from branchyard.core.remote_policy import (
    Permission,
    RemoteBinding,
    RemoteRole,
    validate_bindings,
)

WORKSPACE_CONFIG_FILENAME = "branchyard.toml"


@dataclass(frozen=True)
class GlobalConfig:
    """Immutable global configuration data."""

    workspace_root: Path | None
    show_pr_info: bool


@dataclass(frozen=True)
class BuildCacheConfig:
    directory: str = "build-cache"
    env_vars: tuple[str, ...] = ("BUILD_CACHE_DIR",)
    env_file: str = ".env"


@dataclass(frozen=True)
class WorkspaceConfig:
    """In-memory representation of `<root>/branchyard.toml`."""

    repository_dir: str = "repo"
    worktrees_dir: str = "worktrees"
    trunk_branch: str | None = None  # None = auto-detect
    build_cache: BuildCacheConfig = field(default_factory=BuildCacheConfig)
    remotes: tuple[RemoteBinding, ...] = ()
    env: dict[str, str] = field(default_factory=dict)


def global_config_path() -> Path:
    """Get the path to the global config file."""
    return Path.home() / ".branchyard" / "config.toml"


def load_global_config(path: Path | None = None) -> GlobalConfig:
    """Load global config, returning defaults when the file does not exist."""
    config_path = path if path is not None else global_config_path()
    if not config_path.exists():
        return GlobalConfig(workspace_root=None, show_pr_info=True)

    data = tomllib.loads(config_path.read_text(encoding="utf-8"))
    root = data.get("workspace_root")
    return GlobalConfig(
        workspace_root=Path(root).expanduser().resolve() if root else None,
        show_pr_info=bool(data.get("show_pr_info", True)),
    )


def save_global_config(config: GlobalConfig, path: Path | None = None) -> None:
    """Save global config, preserving any unrelated keys already in the file."""
    config_path = path if path is not None else global_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    if config_path.exists():
        doc = tomlkit.parse(config_path.read_text(encoding="utf-8"))
    else:
        doc = tomlkit.document()
        doc.add(tomlkit.comment("Global branchyard configuration"))

    if config.workspace_root is not None:
        doc["workspace_root"] = str(config.workspace_root)
    doc["show_pr_info"] = config.show_pr_info
    config_path.write_text(tomlkit.dumps(doc), encoding="utf-8")


def _parse_remote(name: str, raw: dict) -> RemoteBinding:
    url = raw.get("url")
    if not url:
        raise ValueError(f"Remote '{name}' is missing 'url'")
    return RemoteBinding(
        name=name,
        url=str(url),
        permission=Permission(raw.get("permission", Permission.READ_ONLY.value)),
        role=RemoteRole(raw.get("role", RemoteRole.MIRROR.value)),
    )


def load_workspace_config(root: Path) -> WorkspaceConfig:
    """Load branchyard.toml from the workspace root if present; otherwise return defaults.

    Example config:
      [workspace]
      repository_dir = "repo"
      trunk_branch = "unstable"

      [build_cache]
      dir = "build-cache"
      env_vars = ["CARGO_TARGET_DIR"]

      [remotes.origin]
      url = "https://github.com/example/project.git"
      permission = "read-only"
      role = "upstream"

      [remotes.fork]
      url = "https://github.com/me/project.git"
      permission = "read-write"
      role = "fork"

    Raises:
        InvalidRemoteBinding: If the remote bindings violate their invariants
        ValueError: If a value has the wrong shape
    """
    cfg_path = root / WORKSPACE_CONFIG_FILENAME
    if not cfg_path.exists():
        return WorkspaceConfig()

    data = tomllib.loads(cfg_path.read_text(encoding="utf-8"))
    ws = data.get("workspace", {})
    cache = data.get("build_cache", {})
    defaults = BuildCacheConfig()

    remotes = tuple(
        _parse_remote(str(name), raw) for name, raw in data.get("remotes", {}).items()
    )
    validate_bindings(remotes)

    return WorkspaceConfig(
        repository_dir=str(ws.get("repository_dir", "repo")),
        worktrees_dir=str(ws.get("worktrees_dir", "worktrees")),
        trunk_branch=ws.get("trunk_branch"),
        build_cache=BuildCacheConfig(
            directory=str(cache.get("dir", defaults.directory)),
            env_vars=tuple(str(v) for v in cache.get("env_vars", defaults.env_vars)),
            env_file=str(cache.get("env_file", defaults.env_file)),
        ),
        remotes=remotes,
        env={str(k): str(v) for k, v in data.get("env", {}).items()},
    )


def save_workspace_config(root: Path, config: WorkspaceConfig) -> None:
    """Save WorkspaceConfig to branchyard.toml, preserving existing formatting."""
    cfg_path = root / WORKSPACE_CONFIG_FILENAME
    if cfg_path.exists():
        doc = tomlkit.parse(cfg_path.read_text(encoding="utf-8"))
    else:
        doc = tomlkit.document()

    workspace = tomlkit.table()
    workspace["repository_dir"] = config.repository_dir
    workspace["worktrees_dir"] = config.worktrees_dir
    if config.trunk_branch is not None:
        workspace["trunk_branch"] = config.trunk_branch
    doc["workspace"] = workspace

    cache = tomlkit.table()
    cache["dir"] = config.build_cache.directory
    cache["env_vars"] = list(config.build_cache.env_vars)
    cache["env_file"] = config.build_cache.env_file
    doc["build_cache"] = cache

    if config.remotes:
        remotes = tomlkit.table(is_super_table=True)
        for binding in config.remotes:
            entry = tomlkit.table()
            entry["url"] = binding.url
            entry["permission"] = binding.permission.value
            entry["role"] = binding.role.value
            remotes[binding.name] = entry
        doc["remotes"] = remotes

    if config.env:
        doc["env"] = config.env

    cfg_path.write_text(tomlkit.dumps(doc), encoding="utf-8")
