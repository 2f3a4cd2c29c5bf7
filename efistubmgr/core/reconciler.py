"""Boot entry reconciler — converge the firmware boot menu with the stub set.

Planning is pure: ``plan`` takes the build outcomes and a snapshot of the
firmware entries and returns the minimal list of mutations.  ``apply`` issues
them to the firmware store one at a time, in this order:

1. adds and updates, so the menu never loses a tool-owned entry while one is
   being replaced;
2. the boot order normalization;
3. removals.

Entries whose label does not start with the tool's prefix are foreign.  They
never appear in an add, update or remove, and their relative boot order is
preserved.  Running ``plan`` against the state ``apply`` produced yields no
operations.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict

from efistubmgr.backends import FirmwareBootStore
from efistubmgr.errors import FirmwareError
from efistubmgr.models.boot import (
    BootEntry,
    BootOperation,
    OperationKind,
    OperationResult,
)
from efistubmgr.models.profiles import StubTarget

logger = logging.getLogger(__name__)

# Placeholder for the id of an entry created in the same pass
NEW_ENTRY_TOKEN = "new:"

DEFAULT_LABEL_PREFIX = "efistub:"


def expected_label(label_prefix: str, target: StubTarget) -> str:
    """Label of the boot entry for *target*, e.g. ``efistub:lts (6.6.30-1-lts)``."""
    return f"{label_prefix}{target.profile.name} ({target.kernel_version})"


def normalize_loader_path(loader_path: str) -> str:
    """Canonical form for comparing firmware paths (FAT is case-insensitive)."""
    path = loader_path.strip().replace("/", "\\")
    if path and not path.startswith("\\"):
        path = "\\" + path
    return path.casefold()


class ReconcilePlan(BaseModel):
    """Ordered firmware mutations computed by ``BootEntryReconciler.plan``."""

    model_config = ConfigDict(frozen=True)

    operations: list[BootOperation] = []

    @property
    def is_empty(self) -> bool:
        return not self.operations

    def of_kind(self, kind: OperationKind) -> list[BootOperation]:
        return [op for op in self.operations if op.kind == kind]


class BootEntryReconciler:
    """Plans and applies boot menu changes for tool-owned entries.

    Parameters
    ----------
    store:
        Firmware boot store.  All calls are made serially from this object.
    label_prefix:
        Labels starting with this prefix mark entries owned by the tool.
    """

    def __init__(
        self,
        store: FirmwareBootStore,
        *,
        label_prefix: str = DEFAULT_LABEL_PREFIX,
    ) -> None:
        if not label_prefix:
            raise ValueError("label_prefix must not be empty")
        self._store = store
        self._prefix = label_prefix

    def is_tool_owned(self, entry: BootEntry) -> bool:
        return entry.label.startswith(self._prefix)

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def plan(self, targets: list[StubTarget], entries: list[BootEntry]) -> ReconcilePlan:
        """Compute the operations converging *entries* towards *targets*."""
        owned = sorted(
            (e for e in entries if self.is_tool_owned(e)),
            key=lambda e: (
                e.boot_order_position is None,
                e.boot_order_position or 0,
                e.entry_id,
            ),
        )
        by_loader: dict[str, list[BootEntry]] = {}
        for entry in owned:
            by_loader.setdefault(normalize_loader_path(entry.loader_path), []).append(entry)

        upserts: list[BootOperation] = []
        kept: dict[str, str] = {}  # entry id or NEW_ENTRY_TOKEN, keyed by loader
        ordered_loaders: list[str] = []

        for target in sorted(targets, key=lambda t: t.profile.position):
            key = normalize_loader_path(target.loader_path)
            existing = by_loader.get(key, [])

            if target.failed:
                # Last good stub still on disk: leave its entry alone
                if target.stub_exists and existing:
                    kept[key] = existing[0].entry_id
                    ordered_loaders.append(key)
                continue

            label = expected_label(self._prefix, target)
            ordered_loaders.append(key)
            if not existing:
                kept[key] = NEW_ENTRY_TOKEN + target.profile.name
                upserts.append(
                    BootOperation(
                        kind=OperationKind.ADD,
                        profile=target.profile.name,
                        label=label,
                        loader_path=target.loader_path,
                    )
                )
                continue

            entry = existing[0]
            kept[key] = entry.entry_id
            if entry.label != label or not entry.active:
                upserts.append(
                    BootOperation(
                        kind=OperationKind.UPDATE,
                        profile=target.profile.name,
                        entry_id=entry.entry_id,
                        label=label,
                        loader_path=target.loader_path,
                    )
                )

        removals = [
            BootOperation(
                kind=OperationKind.REMOVE,
                profile=self._profile_for(entry, targets),
                entry_id=entry.entry_id,
                label=entry.label,
                loader_path=entry.loader_path,
            )
            for entry in owned
            if kept.get(normalize_loader_path(entry.loader_path)) != entry.entry_id
        ]

        operations = list(upserts)
        reorder = self._plan_order(
            entries,
            owned_ids={e.entry_id for e in owned},
            removed_ids={op.entry_id for op in removals},
            desired_owned=[kept[key] for key in ordered_loaders],
        )
        if reorder is not None:
            operations.append(reorder)
        operations.extend(removals)
        return ReconcilePlan(operations=operations)

    def _profile_for(self, entry: BootEntry, targets: list[StubTarget]) -> str | None:
        key = normalize_loader_path(entry.loader_path)
        for target in targets:
            if normalize_loader_path(target.loader_path) == key:
                return target.profile.name
        return None

    @staticmethod
    def _plan_order(
        entries: list[BootEntry],
        *,
        owned_ids: set[str],
        removed_ids: set[str],
        desired_owned: list[str],
    ) -> BootOperation | None:
        """Place tool-owned entries as one block, in profile order.

        The block goes where the first tool-owned entry currently sits, or at
        the front of the order when there is none.  Foreign entries keep their
        relative order; entries absent from the boot order stay absent.
        """
        current = [
            e.entry_id
            for e in sorted(
                (e for e in entries if e.boot_order_position is not None),
                key=lambda e: e.boot_order_position,
            )
        ]
        foreign = [i for i in current if i not in owned_ids]

        anchor = 0
        for entry_id in current:
            if entry_id in owned_ids:
                break
            anchor += 1
        else:
            anchor = 0

        desired = foreign[:anchor] + desired_owned + foreign[anchor:]
        remaining = [i for i in current if i not in removed_ids]
        if desired == remaining:
            return None
        return BootOperation(kind=OperationKind.REORDER, order=tuple(desired))

    # ------------------------------------------------------------------
    # Applying
    # ------------------------------------------------------------------

    def apply(self, plan: ReconcilePlan) -> list[OperationResult]:
        """Apply *plan* serially; a failed operation does not stop the rest."""
        results: list[OperationResult] = []
        created: dict[str, str] = {}

        for op in plan.operations:
            try:
                if op.kind == OperationKind.ADD:
                    entry_id = self._store.add_entry(op.label, op.loader_path)
                    created[NEW_ENTRY_TOKEN + (op.profile or "")] = entry_id
                    results.append(
                        OperationResult(operation=op, succeeded=True, entry_id=entry_id)
                    )
                elif op.kind == OperationKind.UPDATE:
                    self._store.update_entry(op.entry_id, op.label, op.loader_path)
                    results.append(
                        OperationResult(operation=op, succeeded=True, entry_id=op.entry_id)
                    )
                elif op.kind == OperationKind.REORDER:
                    order = [
                        created.get(token, token)
                        for token in op.order
                        if not token.startswith(NEW_ENTRY_TOKEN) or token in created
                    ]
                    op = op.model_copy(update={"order": tuple(order)})
                    self._store.set_order(order)
                    results.append(OperationResult(operation=op, succeeded=True))
                else:
                    self._store.remove_entry(op.entry_id)
                    results.append(
                        OperationResult(operation=op, succeeded=True, entry_id=op.entry_id)
                    )
            except FirmwareError as exc:
                logger.error("Boot entry operation failed (%s): %s", op.describe(), exc)
                results.append(
                    OperationResult(
                        operation=op, succeeded=False, entry_id=op.entry_id, error=str(exc)
                    )
                )
                continue
            logger.info("Boot entry operation applied: %s", results[-1].operation.describe())

        return results

    def reconcile(
        self, targets: list[StubTarget], entries: list[BootEntry]
    ) -> list[OperationResult]:
        """Plan against the *entries* snapshot and apply the result."""
        return self.apply(self.plan(targets, entries))
