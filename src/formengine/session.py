"""
Edit sessions: one editor, one document, one server-granted lock.

The engine itself is single-writer and never locks. Exclusivity between
users is delegated to an external edit lock keyed by document id; the
session only asks whether the lock is still held.

Losing the lock is fatal for the SESSION: the local document is
discarded and EditLockLostError is raised. The session never keeps
mutating a document somebody else may now own. ``reload()`` starts over
from the repository once the lock has been re-acquired.

Persistence (load/save, with whatever timeouts and retries it needs) is
the repository's business; the session only brackets it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Protocol

from .config import EngineSettings
from .errors import FormEngineError
from .serialization import validate_payload
from .store import DocumentStore

logger = logging.getLogger(__name__)


class EditLockLostError(FormEngineError):
    """Raised when the edit lock is no longer held; local state was discarded."""
    pass


class EditLock(Protocol):
    """Server-granted exclusive edit lock for one document."""

    def is_held(self) -> bool:
        ...


class DocumentRepository(Protocol):
    """External persistence collaborator."""

    def load(self, document_id: str) -> Mapping[str, Any]:
        ...

    def save(self, document_id: str, payload: Dict[str, Any]) -> None:
        ...


class EditSession:
    """
    Binds a DocumentStore to a document id, a repository and a lock.

    Usage:
        session = EditSession("form-42", repository, lock)
        session.open()
        session.store.add_field({"type": "text", "label": "Name"})
        session.save()
    """

    def __init__(
        self,
        document_id: str,
        repository: DocumentRepository,
        lock: EditLock,
        settings: Optional[EngineSettings] = None,
    ):
        self.document_id = document_id
        self.repository = repository
        self.lock = lock
        self.settings = settings
        self._store: Optional[DocumentStore] = None

    @property
    def is_open(self) -> bool:
        return self._store is not None

    def _ensure_lock(self) -> None:
        if not self.lock.is_held():
            if self._store is not None:
                logger.error("Edit lock for %r lost, discarding local document", self.document_id)
            self._store = None
            raise EditLockLostError(f"edit lock for document {self.document_id!r} is not held")

    def open(self) -> DocumentStore:
        """
        Load the document from the repository into a fresh store.

        Raises:
            EditLockLostError: if the lock is not held
            SchemaFormatError: if the stored payload is not a form document
        """
        self._ensure_lock()
        payload = validate_payload(self.repository.load(self.document_id))
        self._store = DocumentStore(payload, settings=self.settings)
        logger.debug("Opened edit session for %r", self.document_id)
        return self._store

    def reload(self) -> DocumentStore:
        """Discard local state and load the stored document again."""
        self._store = None
        return self.open()

    @property
    def store(self) -> DocumentStore:
        """
        The session's store, after verifying the lock.

        Raises:
            EditLockLostError: if the lock is gone (the store is discarded)
            FormEngineError: if the session is not open
        """
        self._ensure_lock()
        if self._store is None:
            raise FormEngineError(f"edit session for {self.document_id!r} is not open")
        return self._store

    def save(self) -> None:
        """Hand the current document to the repository and mark it saved."""
        store = self.store
        self.repository.save(self.document_id, store.to_dict())
        store.mark_saved()
        logger.debug("Saved document %r", self.document_id)

    def close(self) -> None:
        self._store = None
