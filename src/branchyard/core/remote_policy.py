"""Remote bindings and the gate for outbound network writes.

The orchestrator never pushes. Before anything is handed to the external
signing authority for a push (or a pull request is opened), the target remote
is checked here. Pushes to the upstream binding are rejected before any
network call is attempted.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from branchyard.core.errors import ForbiddenRemote, InvalidRemoteBinding

logger = logging.getLogger(__name__)

# Remote names that always denote the upstream project
UPSTREAM_NAMES = frozenset({"origin", "upstream"})


class Permission(Enum):
    READ_ONLY = "read-only"
    READ_WRITE = "read-write"


class RemoteRole(Enum):
    UPSTREAM = "upstream"
    FORK = "fork"
    MIRROR = "mirror"


class OperationKind(Enum):
    FETCH = "fetch"
    VIEW = "view"
    PUSH = "push"
    CREATE_PR = "create_pr"

    @property
    def is_write(self) -> bool:
        return self in (OperationKind.PUSH, OperationKind.CREATE_PR)


@dataclass(frozen=True)
class RemoteBinding:
    """A logical remote name bound to a URL and a permission."""

    name: str
    url: str
    permission: Permission
    role: RemoteRole

    @property
    def is_upstream(self) -> bool:
        return self.role is RemoteRole.UPSTREAM or self.name in UPSTREAM_NAMES


def validate_bindings(bindings: tuple[RemoteBinding, ...]) -> None:
    """Check the invariants that hold across all remote bindings.

    - names are unique
    - the upstream binding is read-only
    - read-write is only granted to a fork, and to at most one binding

    Raises:
        InvalidRemoteBinding: On the first violated invariant
    """
    seen: set[str] = set()
    writable: list[str] = []
    for binding in bindings:
        if binding.name in seen:
            raise InvalidRemoteBinding(f"Remote '{binding.name}' is bound more than once")
        seen.add(binding.name)

        if binding.permission is not Permission.READ_WRITE:
            continue
        if binding.is_upstream:
            raise InvalidRemoteBinding(
                f"Remote '{binding.name}' is the upstream binding and must be read-only"
            )
        if binding.role is not RemoteRole.FORK:
            raise InvalidRemoteBinding(
                f"Remote '{binding.name}' has role '{binding.role.value}'; "
                "only a fork may be read-write"
            )
        writable.append(binding.name)

    if len(writable) > 1:
        raise InvalidRemoteBinding(
            f"Only one read-write fork binding is allowed, found: {', '.join(writable)}"
        )


class RemoteAccessPolicy:
    """Fail-closed gate consulted before any network-writing step.

    authorize() has no side effects; it either returns or raises.
    """

    def __init__(self, bindings: tuple[RemoteBinding, ...]) -> None:
        validate_bindings(bindings)
        self._bindings = {binding.name: binding for binding in bindings}

    @property
    def bindings(self) -> list[RemoteBinding]:
        return list(self._bindings.values())

    def get(self, remote_name: str) -> RemoteBinding | None:
        return self._bindings.get(remote_name)

    def fork_binding(self) -> RemoteBinding | None:
        """The contributor's read-write fork, if one is bound."""
        for binding in self._bindings.values():
            if binding.permission is Permission.READ_WRITE:
                return binding
        return None

    def authorize(self, remote_name: str, operation: OperationKind) -> RemoteBinding | None:
        """Check whether `operation` may target `remote_name`.

        Read operations are unrestricted and return the binding if one exists.
        Write operations require the read-write fork binding.

        Returns:
            The binding the operation targets (None for reads of unbound remotes)

        Raises:
            ForbiddenRemote: If a write targets anything other than the read-write fork
        """
        binding = self._bindings.get(remote_name)
        if not operation.is_write:
            return binding

        if binding is None:
            logger.debug("Denied %s to unbound remote %s", operation.value, remote_name)
            raise ForbiddenRemote(remote_name, operation.value, "remote is not bound")
        if binding.is_upstream:
            logger.debug("Denied %s to upstream remote %s", operation.value, remote_name)
            raise ForbiddenRemote(
                remote_name, operation.value, "the upstream binding is read-only"
            )
        if binding.permission is not Permission.READ_WRITE or binding.role is not RemoteRole.FORK:
            logger.debug("Denied %s to read-only remote %s", operation.value, remote_name)
            raise ForbiddenRemote(
                remote_name, operation.value, "only the read-write fork accepts writes"
            )

        logger.debug("Authorized %s to fork remote %s", operation.value, remote_name)
        return binding
