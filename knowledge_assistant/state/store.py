from __future__ import annotations

import logging
import os
import stat
import tempfile
from collections.abc import Iterable
from enum import Enum
from pathlib import Path

from pydantic import ValidationError

from ..errors import PersistenceError
from ..metrics import facts_learned_total, save_failures_total
from .knowledge import KnowledgeBase

logger = logging.getLogger(__name__)


class LoadOutcome(str, Enum):
    """How :meth:`KnowledgeStore.load` arrived at its result."""

    LOADED = "loaded"
    MISSING = "missing"
    CORRUPT = "corrupt"


class KnowledgeStore:
    """Durable home of a :class:`KnowledgeBase`.

    Every mutating method writes the whole knowledge base back to ``path``
    before returning. Loading never fails: a missing or unreadable file
    yields an empty knowledge base. Saving does fail loudly, with
    :class:`PersistenceError`, because a silent failure would lose what the
    user taught.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def load(self) -> tuple[KnowledgeBase, LoadOutcome]:
        if not self.path.exists():
            logger.debug("kb_missing", extra={"event_type": "kb_missing", "path": self.path})
            return KnowledgeBase(), LoadOutcome.MISSING
        try:
            raw = self.path.read_text(encoding="utf-8")
            kb = KnowledgeBase.model_validate_json(raw)
        except (OSError, UnicodeDecodeError, ValidationError) as exc:
            logger.warning(
                "kb_corrupt",
                extra={"event_type": "kb_corrupt", "path": self.path, "error": str(exc)},
            )
            return KnowledgeBase(), LoadOutcome.CORRUPT
        logger.info(
            "kb_loaded",
            extra={"event_type": "kb_loaded", "path": self.path, "facts_total": len(kb.facts)},
        )
        return kb, LoadOutcome.LOADED

    def save(self, kb: KnowledgeBase) -> None:
        """Write ``kb`` to a sibling temp file and rename it into place."""

        payload = kb.to_json()
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as fh:
                tmp_name = fh.name
                fh.write(payload)
            os.chmod(tmp_name, self._file_mode())
            os.replace(tmp_name, self.path)
        except OSError as exc:
            save_failures_total.inc()
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            logger.error(
                "kb_save_failed",
                extra={
                    "event_type": "kb_save_failed",
                    "path": self.path,
                    "error_category": PersistenceError.category.value,
                },
            )
            raise PersistenceError(f"could not save {self.path}: {exc}") from exc
        logger.debug(
            "kb_saved",
            extra={"event_type": "kb_saved", "path": self.path, "facts_total": len(kb.facts)},
        )

    def _file_mode(self) -> int:
        # Temp files are created 0600; keep the existing mode, or the umask default.
        try:
            return stat.S_IMODE(os.stat(self.path).st_mode)
        except FileNotFoundError:
            umask = os.umask(0)
            os.umask(umask)
            return 0o666 & ~umask

    def reset(self, kb: KnowledgeBase) -> KnowledgeBase:
        kb.clear()
        self.save(kb)
        logger.info("kb_reset", extra={"event_type": "kb_reset", "path": self.path})
        return kb

    def set_identity(self, kb: KnowledgeBase, name: str) -> None:
        kb.identity = name
        self.save(kb)

    def insert(self, kb: KnowledgeBase, key: str, value: str) -> None:
        if not key:
            raise ValueError("fact key must not be empty")
        kb.facts[key] = value
        facts_learned_total.inc()
        self.save(kb)

    def bulk_insert(self, kb: KnowledgeBase, pairs: Iterable[tuple[str, str]]) -> int:
        """Upsert every pair with a non-empty key and save once.

        Returns the number of pairs applied.
        """

        applied = 0
        for key, value in pairs:
            if not key:
                continue
            kb.facts[key] = value
            applied += 1
        facts_learned_total.inc(applied)
        self.save(kb)
        logger.info(
            "kb_bulk_insert",
            extra={"event_type": "kb_bulk_insert", "facts_total": len(kb.facts)},
        )
        return applied
