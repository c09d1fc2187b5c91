from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum

from ..formats import (
    read_csv_file,
    read_key_value_file,
    write_csv_file,
    write_markdown_file,
)
from ..state.knowledge import KnowledgeBase
from ..state.store import KnowledgeStore

logger = logging.getLogger(__name__)

DONE = "done"


class TeachingState(str, Enum):
    IDLE = "idle"
    AWAITING_KEY = "awaiting_key"
    AWAITING_VALUE = "awaiting_value"


class TeachingStep(str, Enum):
    """What happened to the last line fed to :class:`TeachingController`."""

    STARTED = "started"
    KEY_ACCEPTED = "key_accepted"
    EMPTY_KEY = "empty_key"
    COMMITTED = "committed"
    FINISHED = "finished"


@dataclass
class TeachingController:
    """Manual teaching mode.

    ``start`` moves from ``IDLE`` to ``AWAITING_KEY``. Each key is followed by
    a value and the pair is committed to the store right away, so a later
    ``done`` never undoes earlier pairs. ``done`` as either key or value ends
    the session; a pending key is dropped.
    """

    store: KnowledgeStore
    kb: KnowledgeBase
    state: TeachingState = TeachingState.IDLE
    pending_key: str | None = None
    committed: list[tuple[str, str]] = field(default_factory=list)

    @property
    def active(self) -> bool:
        return self.state is not TeachingState.IDLE

    def start(self) -> TeachingStep:
        self.state = TeachingState.AWAITING_KEY
        self.pending_key = None
        self.committed = []
        return TeachingStep.STARTED

    def finish(self) -> TeachingStep:
        if self.pending_key is not None:
            logger.debug(
                "teach_abort", extra={"event_type": "teach_abort", "key": self.pending_key}
            )
        self.state = TeachingState.IDLE
        self.pending_key = None
        return TeachingStep.FINISHED

    def feed(self, line: str) -> TeachingStep:
        if self.state is TeachingState.IDLE:
            raise RuntimeError("teaching mode is not active")

        text = line.strip()
        if text.lower() == DONE:
            return self.finish()

        if self.state is TeachingState.AWAITING_KEY:
            if not text:
                return TeachingStep.EMPTY_KEY
            self.pending_key = text
            self.state = TeachingState.AWAITING_VALUE
            return TeachingStep.KEY_ACCEPTED

        key = self.pending_key
        assert key is not None
        self.pending_key = None
        self.state = TeachingState.AWAITING_KEY
        self.committed.append((key, text))
        # The pair is in memory before the save; a PersistenceError still
        # leaves the controller ready for the next key.
        self.store.insert(self.kb, key, text)
        logger.info("teach_commit", extra={"event_type": "teach_commit", "key": key})
        return TeachingStep.COMMITTED


def teach_from_file(
    store: KnowledgeStore, kb: KnowledgeBase, path: str | os.PathLike[str]
) -> int:
    """Learn every ``key=value`` line of ``path``; returns the number applied."""

    pairs = read_key_value_file(path)
    applied = store.bulk_insert(kb, pairs)
    logger.info(
        "teach_file", extra={"event_type": "teach_file", "path": path, "facts_total": applied}
    )
    return applied


def import_csv(store: KnowledgeStore, kb: KnowledgeBase, path: str | os.PathLike[str]) -> int:
    pairs = read_csv_file(path)
    applied = store.bulk_insert(kb, pairs)
    logger.info(
        "import_csv", extra={"event_type": "import_csv", "path": path, "facts_total": applied}
    )
    return applied


def export_csv(kb: KnowledgeBase, path: str | os.PathLike[str]) -> None:
    write_csv_file(kb.facts, path)
    logger.info("export_csv", extra={"event_type": "export_csv", "path": path})


def export_markdown(kb: KnowledgeBase, path: str | os.PathLike[str]) -> None:
    write_markdown_file(kb.facts, path)
    logger.info("export_md", extra={"event_type": "export_md", "path": path})
