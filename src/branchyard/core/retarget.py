"""Replaying a worktree's unique commits onto a new base reference.

This environment cannot sign commits, so a replay stops at staged, unsigned
changes and writes a HandoffManifest for the external signing authority.

The pre-retarget head is recorded twice before anything is touched: in the
RetargetOperation and in a backup ref that keeps its commits reachable. A
conflicted replay can therefore always be undone with abort().

Lifecycle of one retarget:

    begin_retarget  ->  pending      (worktree: Retargeting)
    replay          ->  replayed-unsigned (worktree: Active, changes staged)
                    ->  conflicted   (worktree: Conflicted)
    resolve         ->  continues a conflicted replay after a manual fix
    abort           ->  aborted      (worktree: Active, original head restored)
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace

from branchyard.core.errors import (
    ActiveOperation,
    ConflictDuringReplay,
    InvalidBase,
    NotFound,
    UncommittedChanges,
)
from branchyard.core.git.abc import CommitInfo, Git
from branchyard.core.handoff import HandoffManifest, HandoffStore, build_push_request
from branchyard.core.locking import BranchLocks
from branchyard.core.naming import backup_ref_for
from branchyard.core.operations import OperationStore, RetargetOperation, RetargetOutcome
from branchyard.core.records import RecordStore, WorktreeRecord
from branchyard.core.remote_policy import RemoteAccessPolicy
from branchyard.core.repository import RepositoryHandle
from branchyard.core.states import WorktreeState, check_transition
from branchyard.core.worktrees import WorktreeLifecycleManager, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetargetStatus:
    """What is outstanding for one branch: an unresolved operation or a hand-off."""

    branch: str
    operation: RetargetOperation | None
    handoff: HandoffManifest | None

    @property
    def idle(self) -> bool:
        return self.operation is None and self.handoff is None


class RetargetController:
    """Moves a worktree's unique commits onto a new base without finalizing them."""

    def __init__(
        self,
        repository: RepositoryHandle,
        manager: WorktreeLifecycleManager,
        records: RecordStore,
        locks: BranchLocks,
        operations: OperationStore,
        handoffs: HandoffStore,
        policy: RemoteAccessPolicy,
    ) -> None:
        self._repository = repository
        self._manager = manager
        self._records = records
        self._locks = locks
        self._operations = operations
        self._handoffs = handoffs
        self._policy = policy

    @property
    def _git(self) -> Git:
        return self._repository.git

    def _busy(self, branch: str) -> ActiveOperation:
        return ActiveOperation(branch, "another operation is in progress on this branch")

    def begin_retarget(
        self, branch: str, new_base: str, *, from_base: str | None = None
    ) -> RetargetOperation:
        """Record a pending retarget of `branch` onto `new_base`.

        Nothing in the worktree changes yet. The commits to replay are those on
        the branch not reachable from its original base, oldest first.

        Args:
            branch: Branch whose worktree is retargeted
            new_base: Reference the commits will be replayed onto
            from_base: Original base to measure unique commits against; defaults
                to the base recorded when the worktree was created

        Raises:
            NotFound: If the branch has no worktree
            ActiveOperation: If a retarget or hand-off is already outstanding
            InvalidBase: If `new_base` (or `from_base`) does not resolve, or the
                worktree has no recorded base and none was given
            UncommittedChanges: If the worktree has uncommitted tracked changes
            IllegalTransition: If the worktree is not Active
        """
        with self._locks.hold(branch, self._busy(branch)):
            record = self._manager.get(branch)
            if record is None or record.orphaned:
                raise NotFound(branch)

            existing = self._operations.load(branch)
            if existing is not None:
                raise ActiveOperation(branch, f"a retarget is already {existing.outcome.value}")
            if self._handoffs.load(branch) is not None:
                raise ActiveOperation(
                    branch, "a replayed retarget is awaiting the external signer"
                )

            new_base_sha = self._repository.require(new_base)
            if from_base is not None:
                original_base_ref: str | None = from_base
                original_base_sha = self._repository.require(from_base)
            elif record.base_sha is not None:
                original_base_ref = record.base_ref
                original_base_sha = record.base_sha
            else:
                raise InvalidBase(f"(no base recorded for '{branch}')")

            check_transition(branch, record.state, WorktreeState.RETARGETING)
            if self._git.has_uncommitted_changes(record.path):
                raise UncommittedChanges(branch, record.path)

            head_sha = self._repository.require(branch)
            commits = self._repository.unique_commits(original_base_sha, head_sha)

            operation = RetargetOperation(
                branch=branch,
                worktree_path=record.path,
                original_base_ref=original_base_ref,
                original_base_sha=original_base_sha,
                original_head_sha=head_sha,
                new_base_ref=new_base,
                new_base_sha=new_base_sha,
                commits=tuple(commits),
                outcome=RetargetOutcome.PENDING,
                started_at=utc_now(),
            )

            self._git.update_ref(self._repository.path, backup_ref_for(branch), head_sha)
            self._operations.save(operation)
            self._records.save(
                replace(record, state=WorktreeState.RETARGETING, orphaned=False, adopted=False)
            )
            logger.debug(
                "Retarget of %s pending: %d commits from %s onto %s",
                branch,
                len(commits),
                original_base_sha,
                new_base_sha,
            )
            return operation

    def replay(self, branch: str) -> RetargetOperation:
        """Reset the worktree to the new base and stage each commit's changes in order.

        Returns the operation in its new state. A content conflict is not
        raised; the returned operation is `conflicted` and
        `operation.conflict_error()` describes it.

        Raises:
            NotFound: If no retarget is outstanding for the branch
            ActiveOperation: If the retarget is already conflicted
            ForbiddenRemote: If the bound fork does not pass the push policy
        """
        with self._locks.hold(branch, self._busy(branch)):
            operation = self._require_operation(branch)
            if operation.outcome is not RetargetOutcome.PENDING:
                raise ActiveOperation(
                    branch, "the retarget is conflicted; resolve or abort it first"
                )
            record = self._require_record(branch)

            # Consult the push policy before the first mutation
            build_push_request(self._policy, branch)

            logger.debug("Replaying %s onto %s", branch, operation.new_base_sha)
            self._git.reset_hard(operation.worktree_path, operation.new_base_sha)
            started = replace(operation, applied=())
            return self._apply(record, started, operation.commits)

    def resolve(self, branch: str) -> RetargetOperation:
        """Continue a conflicted replay after the operator fixed the conflict by hand.

        The conflicted commit counts as applied once no unmerged paths remain.
        The remaining commits are staged the same way replay() does, so the
        result is either `replayed-unsigned` or `conflicted` again.

        Raises:
            NotFound: If no retarget is outstanding for the branch
            ActiveOperation: If the retarget has not been replayed yet
            ConflictDuringReplay: If unmerged paths remain in the worktree
        """
        with self._locks.hold(branch, self._busy(branch)):
            operation = self._require_operation(branch)
            if operation.outcome is not RetargetOutcome.CONFLICTED:
                raise ActiveOperation(branch, "the retarget is pending; replay or abort it")
            record = self._require_record(branch)

            unmerged = self._git.list_unmerged_files(operation.worktree_path)
            if unmerged:
                raise ConflictDuringReplay(branch, operation.conflict_sha or "", unmerged)

            build_push_request(self._policy, branch)
            self._git.quit_cherry_pick(operation.worktree_path)

            applied = operation.applied
            if operation.conflict_sha is not None:
                applied = (*applied, operation.conflict_sha)
            remaining = [c for c in operation.commits if c.sha not in applied]
            continued = replace(operation, applied=applied)
            logger.debug("Resolved conflict on %s; %d commits remain", branch, len(remaining))
            return self._apply(record, continued, remaining)

    def abort(self, branch: str) -> RetargetOperation | None:
        """Restore the worktree to its pre-retarget head and base.

        Works on a pending or conflicted operation and on a replayed one whose
        hand-off the signer has not finalized yet. Aborting a branch with
        nothing outstanding is a no-op that returns None.

        Returns:
            The discarded operation, marked `aborted`, or None
        """
        with self._locks.hold(branch, self._busy(branch)):
            operation = self._operations.load(branch)
            if operation is None:
                manifest = self._handoffs.load(branch)
                if manifest is None:
                    logger.debug("Abort of %s is a no-op: nothing outstanding", branch)
                    return None
                operation = _operation_from_manifest(manifest)

            if self._git.path_exists(operation.worktree_path):
                self._git.quit_cherry_pick(operation.worktree_path)
                self._git.reset_hard(operation.worktree_path, operation.original_head_sha)

            record = self._records.load(branch)
            if record is not None:
                if record.state is not WorktreeState.ACTIVE:
                    check_transition(branch, record.state, WorktreeState.ACTIVE)
                self._records.save(
                    replace(
                        record,
                        state=WorktreeState.ACTIVE,
                        base_ref=operation.original_base_ref,
                        base_sha=operation.original_base_sha,
                    )
                )

            self._operations.discard(branch)
            self._handoffs.discard(branch)
            self._git.delete_ref(self._repository.path, backup_ref_for(branch))
            logger.debug(
                "Aborted retarget of %s; head restored to %s", branch, operation.original_head_sha
            )
            return replace(operation, outcome=RetargetOutcome.ABORTED)

    def status(self, branch: str) -> RetargetStatus:
        return RetargetStatus(
            branch=branch,
            operation=self._operations.load(branch),
            handoff=self._handoffs.load(branch),
        )

    def outstanding(self) -> list[RetargetStatus]:
        """Every branch with an unresolved operation or an unfinalized hand-off."""
        branches = {op.branch for op in self._operations.list_operations()}
        branches.update(m.branch for m in self._handoffs.list_manifests())
        return [self.status(branch) for branch in sorted(branches)]

    def finalize_handoff(self, branch: str) -> HandoffManifest:
        """Record that the external signer committed and pushed the staged changes.

        Discards the manifest and the backup ref of the pre-retarget head.

        Raises:
            NotFound: If no hand-off is waiting for the branch
        """
        with self._locks.hold(branch, self._busy(branch)):
            manifest = self._handoffs.load(branch)
            if manifest is None:
                raise NotFound(branch, what="pending hand-off")
            self._handoffs.discard(branch)
            self._git.delete_ref(self._repository.path, backup_ref_for(branch))
            logger.debug("Hand-off of %s finalized externally", branch)
            return manifest

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    def _require_operation(self, branch: str) -> RetargetOperation:
        operation = self._operations.load(branch)
        if operation is None:
            raise NotFound(branch, what="retarget")
        return operation

    def _require_record(self, branch: str) -> WorktreeRecord:
        record = self._records.load(branch)
        if record is None:
            raise NotFound(branch)
        return record

    def _apply(
        self,
        record: WorktreeRecord,
        operation: RetargetOperation,
        commits: Sequence[CommitInfo],
    ) -> RetargetOperation:
        """Stage `commits` in order on top of whatever the worktree holds now."""
        path = operation.worktree_path
        applied = list(operation.applied)

        for commit in commits:
            try:
                result = self._git.cherry_pick_no_commit(path, commit.sha)
            except RuntimeError:
                # The backup ref still holds the original head; abort() recovers
                self._operations.save(replace(operation, applied=tuple(applied)))
                raise

            if not result.succeeded:
                conflicted = replace(
                    operation,
                    outcome=RetargetOutcome.CONFLICTED,
                    applied=tuple(applied),
                    conflict_sha=commit.sha,
                    conflicted_paths=tuple(result.conflicted_paths),
                )
                self._operations.save(conflicted)
                if record.state is not WorktreeState.CONFLICTED:
                    check_transition(record.branch, record.state, WorktreeState.CONFLICTED)
                    self._records.save(replace(record, state=WorktreeState.CONFLICTED))
                logger.debug(
                    "Replay of %s conflicted at %s: %s",
                    record.branch,
                    commit.sha,
                    ", ".join(result.conflicted_paths),
                )
                return conflicted

            applied.append(commit.sha)

        self._git.quit_cherry_pick(path)
        staged = self._git.list_staged_files(path)
        push_request = build_push_request(self._policy, record.branch)

        finished = replace(
            operation,
            outcome=RetargetOutcome.REPLAYED_UNSIGNED,
            applied=tuple(applied),
            conflict_sha=None,
            conflicted_paths=(),
        )
        manifest = HandoffManifest(
            branch=record.branch,
            worktree_path=path,
            new_base_ref=operation.new_base_ref,
            new_base_sha=operation.new_base_sha,
            original_base_ref=operation.original_base_ref,
            original_base_sha=operation.original_base_sha,
            original_head_sha=operation.original_head_sha,
            commits=operation.commits,
            staged_paths=tuple(staged),
            push_request=push_request,
            created_at=utc_now(),
        )
        self._handoffs.write(manifest)
        self._operations.discard(record.branch)

        check_transition(record.branch, record.state, WorktreeState.ACTIVE)
        self._records.save(
            replace(
                record,
                state=WorktreeState.ACTIVE,
                base_ref=operation.new_base_ref,
                base_sha=operation.new_base_sha,
            )
        )
        logger.debug(
            "Replay of %s staged %d commits (%d paths), awaiting signer",
            record.branch,
            len(applied),
            len(staged),
        )
        return finished


def _operation_from_manifest(manifest: HandoffManifest) -> RetargetOperation:
    return RetargetOperation(
        branch=manifest.branch,
        worktree_path=manifest.worktree_path,
        original_base_ref=manifest.original_base_ref,
        original_base_sha=manifest.original_base_sha,
        original_head_sha=manifest.original_head_sha,
        new_base_ref=manifest.new_base_ref,
        new_base_sha=manifest.new_base_sha,
        commits=manifest.commits,
        outcome=RetargetOutcome.REPLAYED_UNSIGNED,
        started_at=manifest.created_at,
        applied=tuple(c.sha for c in manifest.commits),
    )
