"""Firmware boot entry snapshot and reconcile operation models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class BootEntry(BaseModel):
    """One NVRAM boot record as read at the start of a reconcile pass.

    The firmware owns the authoritative copy; instances are a per-run
    snapshot and must not be cached across runs.
    """

    model_config = ConfigDict(frozen=True)

    entry_id: str  # 4-digit hex boot number, e.g. "0003"
    label: str
    loader_path: str = ""  # "" when the entry does not boot a file
    boot_order_position: int | None = None  # None if absent from BootOrder
    active: bool = True


class OperationKind(str, Enum):
    """Kinds of boot menu mutations."""

    ADD = "add"
    UPDATE = "update"
    REMOVE = "remove"
    REORDER = "reorder"


class BootOperation(BaseModel):
    """A single planned firmware mutation.

    For ``REORDER``, ``order`` holds the full desired BootOrder.  Entries that
    are created in the same pass appear as ``new:<profile>`` placeholders and
    are replaced with their real ids when the plan is applied.
    """

    model_config = ConfigDict(frozen=True)

    kind: OperationKind
    profile: str | None = None
    entry_id: str | None = None
    label: str = ""
    loader_path: str = ""
    order: tuple[str, ...] = ()

    def describe(self) -> str:
        if self.kind == OperationKind.ADD:
            return f"add '{self.label}' -> {self.loader_path}"
        if self.kind == OperationKind.UPDATE:
            return f"update Boot{self.entry_id} to '{self.label}' -> {self.loader_path}"
        if self.kind == OperationKind.REMOVE:
            return f"remove Boot{self.entry_id} '{self.label}'"
        return f"set boot order {','.join(self.order)}"


class OperationResult(BaseModel):
    """Outcome of applying one ``BootOperation``."""

    model_config = ConfigDict(frozen=True)

    operation: BootOperation
    succeeded: bool
    entry_id: str | None = None  # id assigned by the firmware for adds
    error: str = ""
