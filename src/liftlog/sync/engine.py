"""One synchronization pass between the local database and the remote document."""

import logging
from dataclasses import dataclass, field
from datetime import tzinfo

from ..db.repositories import LocalRepository
from ..models.snapshot import Snapshot
from .errors import ValidationIssue
from .merge import MergePlan, MergeStats, merge
from .migrations import load_snapshot
from .remote import GistClient

logger = logging.getLogger("liftlog.sync.engine")


@dataclass
class SyncOutcome:
    """Result of a sync pass.

    Attributes:
        pushed:      True if the reconciled snapshot was written remotely.
        skipped:     True if the upsert was dropped (no token, or another
                     upsert in flight); nothing was written.
        document_id: Remote document ID after the pass.
        stats:       What the merge imported.
        issues:      Remote records skipped as malformed or unresolvable.
    """

    pushed: bool = False
    skipped: bool = False
    document_id: str | None = None
    stats: MergeStats = field(default_factory=MergeStats)
    issues: list[ValidationIssue] = field(default_factory=list)


class SyncEngine:
    """Pull, reconcile and push the full snapshot."""

    def __init__(
        self,
        repository: LocalRepository,
        client: GistClient,
        tz: tzinfo | None = None,
    ):
        self.repository = repository
        self.client = client
        self.tz = tz

    async def export_snapshot(self) -> Snapshot:
        """Export the full local state."""
        return await self.repository.export_snapshot()

    async def import_snapshot(self, payload: dict) -> SyncOutcome:
        """Merge a snapshot document (any supported version) into local state.

        Raises:
            ValidationError: If the document cannot be migrated
        """
        remote, issues = load_snapshot(payload)
        local = await self.repository.export_snapshot()
        plan = merge(local, remote, self.tz)
        await self.apply_plan(plan)

        outcome = SyncOutcome(stats=plan.stats, issues=issues + plan.issues)
        logger.info("Imported snapshot: %s", plan.stats.to_dict())
        return outcome

    async def pull(self) -> SyncOutcome:
        """Fetch the remote document and merge it into local state."""
        document = await self.client.fetch_remote_document()
        if document is None or document.payload is None:
            logger.info("Nothing to pull")
            return SyncOutcome(document_id=document.document_id if document else None)

        outcome = await self.import_snapshot(document.payload)
        outcome.document_id = document.document_id
        return outcome

    async def push(self) -> SyncOutcome:
        """Export local state and write it to the remote document."""
        snapshot = await self.repository.export_snapshot()
        document = await self.client.upsert_remote_document(snapshot.to_dict())
        if document is None:
            return SyncOutcome(skipped=True)
        logger.info("Pushed snapshot (%s)", snapshot.get_summary())
        return SyncOutcome(pushed=True, document_id=document.document_id)

    async def sync_once(self) -> SyncOutcome:
        """Run a full pass: fetch, merge into local, export, upsert.

        Raises:
            AuthError, TransientError, ValidationError: From the remote side
        """
        outcome = await self.pull()
        pushed = await self.push()
        outcome.pushed = pushed.pushed
        outcome.skipped = pushed.skipped
        outcome.document_id = pushed.document_id or outcome.document_id
        return outcome

    async def apply_plan(self, plan: MergePlan) -> None:
        """Write a merge plan to the local database.

        Remote modification stamps are kept as-is so the next merge of the
        same remote state is a no-op.
        """
        repo = self.repository

        for task in plan.tasks_to_upsert:
            if task.id is not None and await repo.tasks.get_by_id(task.id):
                await repo.tasks.update(task, touch=False)
            else:
                await repo.tasks.insert(task, touch=False)

        for workout in plan.workouts_to_upsert:
            if workout.id is not None and await repo.workouts.get_by_id(workout.id):
                await repo.workouts.update(workout, touch=False)
            else:
                await repo.workouts.insert(workout, touch=False)

        for entry in plan.log_entries_to_insert:
            await repo.log_entries.insert(entry, touch=False)
