"""
Sync Merger — Deterministic reconciliation of two entry stores.

For every application name in either store:
- only local       → kept (local addition, or a remote delete: no tombstones)
- only remote      → adopted
- same content     → the copy with the later ``updated_at`` is kept
- differing content → the later ``updated_at`` wins and a ConflictReport
  records the discarded variant

Winners depend only on entry contents and timestamps, never on argument
order, so ``merge(a, b)`` and ``merge(b, a)`` keep the same entries.
Inputs are never mutated.
"""
import logging
from typing import NamedTuple

from pydantic import BaseModel

from ..entries import Entry, EntryStore

logger = logging.getLogger("keyroost.sync")


class ConflictReport(BaseModel):
    """Two differing variants of one entry; ``discarded`` lost the merge."""

    name: str
    kept: Entry
    discarded: Entry

    model_config = {"frozen": True}


class MergeResult(NamedTuple):
    store: EntryStore
    conflicts: tuple[ConflictReport, ...]


def _tiebreak_key(entry: Entry) -> tuple:
    return (entry.username, entry.password, entry.created_at)


def pick_winner(a: Entry, b: Entry) -> Entry:
    """Return the entry that survives a merge of a and b.

    The later ``updated_at`` wins. Equal timestamps fall back to comparing
    the entry contents, which is arbitrary but symmetric.
    """
    if a.updated_at != b.updated_at:
        return a if a.updated_at > b.updated_at else b
    return a if _tiebreak_key(a) >= _tiebreak_key(b) else b


def merge(local: EntryStore, remote: EntryStore) -> MergeResult:
    """Merge two stores into a new one.

    Args:
        local: Entries of the open session.
        remote: Entries decrypted from the remote copy.

    Returns:
        MergeResult of the merged store (using local's clock) and the
        conflict reports, ordered by name.
    """
    merged: list[Entry] = []
    conflicts: list[ConflictReport] = []
    names = set(local.names()) | set(remote.names())
    for name in sorted(names):
        ours = local.get(name) if name in local else None
        theirs = remote.get(name) if name in remote else None
        if theirs is None:
            merged.append(ours)
        elif ours is None:
            merged.append(theirs)
        else:
            winner = pick_winner(ours, theirs)
            merged.append(winner)
            if not ours.same_content(theirs):
                loser = theirs if winner is ours else ours
                conflicts.append(
                    ConflictReport(name=name, kept=winner, discarded=loser)
                )
    logger.debug(
        "Merged %d local and %d remote entries into %d (%d conflicts)",
        len(local), len(remote), len(merged), len(conflicts),
    )
    return MergeResult(
        store=EntryStore(merged, clock=local.clock),
        conflicts=tuple(conflicts),
    )
