from typing import Any, Callable, Dict, List, Optional
from collections import defaultdict
from contextlib import nullcontext
import copy
import logging
import os
import threading
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from .base_record_store import BaseRecordStore, Snapshot, SnapshotCallback, validate_collection_path
from .api.db.session import Base, make_engine, make_session_factory
from .api.models.record_db import Record

logger = logging.getLogger(__name__)


class SQLRecordStore(BaseRecordStore):
    """
    Record store backed by a SQL database through SQLAlchemy.

    Each document is one row of the ``records`` table, keyed by collection
    path and document id, with the body in a JSON column. Subscriptions are
    in-process: writes made through this instance notify its listeners.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the SQL record store.

        Args:
            config (Optional[Dict[str, Any]]): Configuration dictionary that may contain:
                - 'db_uri': SQLAlchemy database URL (default: $DATABASE_URL or a local SQLite file)
                - 'create_all': create the tables on start-up (default: True)
        """
        super().__init__(config)
        self.db_uri = self.config.get('db_uri') or os.environ.get("DATABASE_URL", "sqlite:///medfolio.db")
        self.engine = make_engine(self.db_uri)
        self.Session = make_session_factory(self.engine)

        if self.config.get('create_all', True):
            Base.metadata.create_all(self.engine)

        # SQLite has no row locks: writes through this instance are serialized instead
        self._row_locks = self.engine.dialect.name != "sqlite"
        self._write_lock = nullcontext() if self._row_locks else threading.Lock()

        self._listeners: Dict[str, List[SnapshotCallback]] = defaultdict(list)
        self._listeners_lock = threading.Lock()

    def get_record(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        validate_collection_path(collection)
        with self.Session() as session:
            row = self._find(session, collection, doc_id)
            return self._to_document(row) if row is not None else None

    def set_record(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> Dict[str, Any]:
        validate_collection_path(collection)
        if not doc_id or not doc_id.strip():
            raise ValueError("Document id cannot be empty")

        body = {k: v for k, v in copy.deepcopy(data).items() if k != "id"}
        with self._write_lock:
            document = self._write(collection, doc_id, body, merge)

        logger.debug("Stored %s/%s (merge=%s)", collection, doc_id, merge)
        self._notify(collection)
        return document

    def _write(self, collection: str, doc_id: str, body: Dict[str, Any], merge: bool) -> Dict[str, Any]:
        # A concurrent first write of the same document loses the insert race
        # on the unique key; the retry then finds the row and updates it.
        for attempt in range(2):
            with self.Session() as session:
                row = self._find(session, collection, doc_id, lock=self._row_locks)
                if row is None:
                    row = Record(collection=collection, doc_id=doc_id, data=body)
                    session.add(row)
                elif merge:
                    # JSON columns are not mutation-tracked, assign a new dict
                    row.data = {**(row.data or {}), **body}
                else:
                    row.data = body
                try:
                    session.commit()
                except IntegrityError:
                    session.rollback()
                    if attempt:
                        raise
                    logger.info("Concurrent insert of %s/%s, retrying as an update", collection, doc_id)
                    continue
                return self._to_document(row)

    def add_record(self, collection: str, data: Dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        self.set_record(collection, doc_id, data)
        return doc_id

    def query_records(self, collection: str) -> Snapshot:
        validate_collection_path(collection)
        with self.Session() as session:
            rows = session.scalars(
                select(Record).where(Record.collection == collection).order_by(Record.id)
            ).all()
            return [self._to_document(r) for r in rows]

    def subscribe(self, collection: str, callback: SnapshotCallback) -> Callable[[], None]:
        validate_collection_path(collection)
        with self._listeners_lock:
            self._listeners[collection].append(callback)

        callback(self.query_records(collection))

        def unsubscribe():
            with self._listeners_lock:
                if callback in self._listeners.get(collection, []):
                    self._listeners[collection].remove(callback)

        return unsubscribe

    def _notify(self, collection: str):
        with self._listeners_lock:
            listeners = list(self._listeners.get(collection, []))
        if not listeners:
            return
        snapshot = self.query_records(collection)
        for listener in listeners:
            listener(copy.deepcopy(snapshot))

    def _find(self, session, collection: str, doc_id: str, lock: bool = False) -> Optional[Record]:
        stmt = select(Record).where(Record.collection == collection, Record.doc_id == doc_id)
        if lock:
            stmt = stmt.with_for_update()
        return session.scalars(stmt).first()

    @staticmethod
    def _to_document(row: Record) -> Dict[str, Any]:
        document = copy.deepcopy(row.data or {})
        document["id"] = row.doc_id
        return document
