"""Creation, listing and removal of worktrees bound to the shared repository.

Every structural change to a branch's worktree happens while holding that
branch's lock from BranchLocks. Operations on different branches proceed in
parallel; a second operation on the same branch fails immediately with
BranchInUse (create) or ActiveOperation (everything else).
"""

import logging
from collections.abc import Iterator
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path

from branchyard.core.build_cache import BuildCacheCoordinator
from branchyard.core.errors import ActiveOperation, BranchInUse, NotFound
from branchyard.core.git.abc import CommitInfo, Git
from branchyard.core.handoff import HandoffStore
from branchyard.core.locking import BranchLocks
from branchyard.core.naming import backup_ref_for
from branchyard.core.operations import OperationStore, RetargetOutcome
from branchyard.core.records import RecordStore, WorktreeRecord
from branchyard.core.repository import RepositoryHandle
from branchyard.core.states import WorktreeState, check_transition
from branchyard.core.workspace import Workspace

logger = logging.getLogger(__name__)

# Entries only a crashed create or remove leaves behind
_ABANDONED_STATES = frozenset({WorktreeState.CREATING, WorktreeState.REMOVING})


def utc_now() -> str:
    return datetime.now(UTC).isoformat(timespec="seconds")


class WorktreeLifecycleManager:
    """Creates, lists and removes isolated worktrees of the shared repository."""

    def __init__(
        self,
        workspace: Workspace,
        repository: RepositoryHandle,
        records: RecordStore,
        locks: BranchLocks,
        cache: BuildCacheCoordinator,
        operations: OperationStore,
        handoffs: HandoffStore,
    ) -> None:
        self._workspace = workspace
        self._repository = repository
        self._records = records
        self._locks = locks
        self._cache = cache
        self._operations = operations
        self._handoffs = handoffs

    @property
    def _git(self) -> Git:
        return self._repository.git

    # ------------------------------------------------------------------
    # create
    # ------------------------------------------------------------------

    def create(self, branch: str, base: str) -> WorktreeRecord:
        """Create a worktree for `branch` starting from `base`.

        If `branch` already exists locally it is checked out as-is and `base`
        is recorded as the reference its unique commits are measured against.
        Otherwise a new branch is created at `base`.

        Raises:
            BranchInUse: If the branch already has a worktree anywhere in the
                workspace, or another create for it is in flight
            InvalidBase: If `base` does not resolve in the shared repository
            PathEscapesWorkspace: If the worktree or build cache would land
                outside the workspace root
            ActiveOperation: If the target directory already exists on disk
        """
        with self._locks.hold(branch, BranchInUse(branch)):
            # Validation: nothing below this block mutates until all checks pass
            existing = self.get(branch)
            if existing is not None:
                raise BranchInUse(branch, existing.path)

            checked_out_at = self._repository.branch_checkout(branch)
            if checked_out_at is not None:
                raise BranchInUse(branch, checked_out_at)

            base_sha = self._repository.require(base)
            path = self._workspace.require_contained(self._workspace.worktree_path_for(branch))
            self._cache.resolved_cache_dir()

            if self._git.path_exists(path):
                raise ActiveOperation(
                    branch, f"directory {path} already exists; remove it or run prune"
                )

            create_branch = branch not in self._repository.local_branches()

            record = WorktreeRecord(
                branch=branch,
                path=path,
                state=WorktreeState.CREATING,
                base_ref=base,
                base_sha=base_sha,
                created_at=utc_now(),
            )
            check_transition(branch, WorktreeState.ABSENT, WorktreeState.CREATING)
            self._records.save(record)

            try:
                self._git.add_worktree(
                    self._repository.path,
                    path,
                    branch=branch,
                    ref=base_sha,
                    create_branch=create_branch,
                )
                if not self._git.is_dir(path):
                    # Dry run: git only announced the add
                    self._records.delete(branch)
                    return replace(record, state=WorktreeState.ACTIVE)
                self._cache.bind(path, branch=branch)
            except Exception:
                logger.debug("Create of %s failed, rolling back", branch)
                check_transition(branch, WorktreeState.CREATING, WorktreeState.ABSENT)
                self._discard_partial_create(path, branch, created_branch=create_branch)
                self._records.delete(branch)
                raise

            check_transition(branch, WorktreeState.CREATING, WorktreeState.ACTIVE)
            active = replace(record, state=WorktreeState.ACTIVE)
            self._records.save(active)
            logger.debug("Created worktree %s at %s (base %s)", branch, path, base_sha)
            return active

    def _discard_partial_create(self, path: Path, branch: str, *, created_branch: bool) -> None:
        """Undo whatever git did before a create failed part-way."""
        if self._git.path_exists(path):
            self._git.remove_worktree(self._repository.path, path, force=True)
        self._git.prune_worktrees(self._repository.path)
        if created_branch and branch in self._repository.local_branches():
            self._git.delete_branch(self._repository.path, branch, force=True)

    # ------------------------------------------------------------------
    # list / get
    # ------------------------------------------------------------------

    def list_worktrees(self) -> Iterator[WorktreeRecord]:
        """Enumerate worktrees, reconciling registry entries with git and the filesystem.

        Lazy and finite; calling it again starts a fresh pass. Entries whose
        directory has vanished are yielded with `orphaned=True`. Git worktrees
        under the worktrees directory that have no entry are yielded with
        `adopted=True` so the registry is never the only source of truth.
        """
        git_worktrees = self._repository.worktrees()
        seen: set[str] = set()

        for record in self._records.iter_records():
            seen.add(record.branch)
            if not self._git.path_exists(record.path):
                yield replace(record, orphaned=True)
            else:
                yield record

        for wt in git_worktrees:
            if wt.is_root or wt.branch is None or wt.branch in seen:
                continue
            if not wt.path.resolve().is_relative_to(self._workspace.worktrees_dir.resolve()):
                continue
            if not self._git.path_exists(wt.path):
                # Stale git metadata; git worktree prune clears it
                continue
            yield self._adopted_record(wt.branch, wt.path)

    def get(self, branch: str) -> WorktreeRecord | None:
        """Look up one worktree by branch, reconciling it like list_worktrees() does."""
        record = self._records.load(branch)
        if record is not None:
            if not self._git.path_exists(record.path):
                return replace(record, orphaned=True)
            return record

        path = self._repository.branch_checkout(branch)
        if path is None:
            return None
        if not path.resolve().is_relative_to(self._workspace.worktrees_dir.resolve()):
            return None
        if not self._git.path_exists(path):
            return None
        return self._adopted_record(branch, path)

    def require(self, branch: str) -> WorktreeRecord:
        """Like get(), but raises NotFound."""
        record = self.get(branch)
        if record is None:
            raise NotFound(branch)
        return record

    def _adopted_record(self, branch: str, path: Path) -> WorktreeRecord:
        return WorktreeRecord(
            branch=branch,
            path=path,
            state=WorktreeState.ACTIVE,
            base_ref=None,
            base_sha=None,
            created_at=None,
            adopted=True,
        )

    def unique_commits(self, record: WorktreeRecord) -> list[CommitInfo]:
        """Commits on the worktree's branch not reachable from its base, oldest first."""
        if record.base_sha is None:
            return []
        return self._repository.unique_commits(record.base_sha, record.branch)

    # ------------------------------------------------------------------
    # remove / prune
    # ------------------------------------------------------------------

    def remove(
        self,
        branch: str,
        *,
        force: bool = False,
        delete_branch: bool = False,
        missing_ok: bool = True,
    ) -> bool:
        """Detach a branch's worktree and release the branch name.

        Removing a branch that has no worktree is a no-op (returns False) so
        recovery scripts can call this repeatedly. A conflicted worktree may be
        removed, which abandons its retarget. An entry left in `creating` or
        `removing` by a crashed process is cleaned up like any other.

        Args:
            branch: Branch whose worktree to remove
            force: Remove even if the worktree has uncommitted changes
            delete_branch: Also delete the local branch once detached
            missing_ok: When False, a missing worktree raises NotFound

        Returns:
            True if a worktree was removed, False if there was nothing to remove

        Raises:
            NotFound: If missing_ok is False and no worktree exists
            ActiveOperation: If a retarget is pending, another operation holds
                the branch, or a build is writing into the shared cache
        """
        busy = ActiveOperation(branch, "another operation is in progress on this branch")
        with self._locks.hold(branch, busy):
            record = self.get(branch)
            if record is None:
                if not missing_ok:
                    raise NotFound(branch)
                logger.debug("Remove of %s is a no-op: no worktree", branch)
                return False

            operation = self._operations.load(branch)
            if operation is not None and operation.outcome is RetargetOutcome.PENDING:
                raise ActiveOperation(branch, "a retarget is pending; replay or abort it first")

            with self._cache.exclusive(branch):
                self._detach(record, operation_pending=operation is not None, force=force)
                if delete_branch:
                    self._git.delete_branch(self._repository.path, branch, force=force)
                self._records.delete(branch)

            self._cache.release(branch)
            logger.debug("Removed worktree %s", branch)
            return True

    def _detach(self, record: WorktreeRecord, *, operation_pending: bool, force: bool) -> None:
        branch = record.branch
        if record.state in _ABANDONED_STATES:
            # The branch lock is held, so no live create or remove owns this entry
            logger.debug("Recovering %s left in state %s", branch, record.state.value)
        else:
            check_transition(branch, record.state, WorktreeState.REMOVING)
        removing = replace(record, state=WorktreeState.REMOVING, orphaned=False, adopted=False)
        self._records.save(removing)

        try:
            if self._git.path_exists(record.path):
                self._git.remove_worktree(self._repository.path, record.path, force=force)
            self._git.prune_worktrees(self._repository.path)
        except Exception:
            logger.debug("Remove of %s failed, restoring %s", branch, record.state.value)
            self._records.save(replace(removing, state=record.state))
            raise

        had_handoff = self._handoffs.discard(branch)
        if operation_pending:
            # Abandoning a conflicted retarget
            self._operations.discard(branch)
        if operation_pending or had_handoff:
            self._git.delete_ref(self._repository.path, backup_ref_for(branch))
        check_transition(branch, WorktreeState.REMOVING, WorktreeState.ABSENT)

    def prune(self) -> int:
        """Drop every orphaned entry.

        Entries whose branch is locked by an in-flight operation are skipped
        and picked up by a later prune.

        Returns:
            Number of entries removed (0 when there is nothing to prune)
        """
        orphans = [record for record in self.list_worktrees() if record.orphaned]
        removed = 0
        for record in orphans:
            busy = ActiveOperation(record.branch, "another operation is in progress")
            try:
                with self._locks.hold(record.branch, busy):
                    current = self._records.load(record.branch)
                    if current is None or self._git.path_exists(current.path):
                        continue
                    if self._operations.load(record.branch) is not None:
                        self._operations.discard(record.branch)
                        self._git.delete_ref(self._repository.path, backup_ref_for(record.branch))
                    self._handoffs.discard(record.branch)
                    self._records.delete(record.branch)
                    removed += 1
                    logger.debug("Pruned orphaned entry %s", record.branch)
            except ActiveOperation:
                logger.debug("Skipping prune of %s: branch is busy", record.branch)

        self._git.prune_worktrees(self._repository.path)
        return removed
