"""Backend wiring: one persistence adapter, one file store, one snapshot feed.

``sql``      SQLAlchemy over SQLite or any SQLAlchemy URL.
``supabase`` SQLAlchemy over the project's Postgres plus its S3 storage.
``realtime`` Firebase Realtime Database tree (in-memory when no URL is set).
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Callable, Iterator

from sqlalchemy.engine import Engine

from archiver.config import Settings
from archiver.database import get_engine, get_sessionmaker, init_db
from archiver.filestore import FileStore, LocalFileStore, S3FileStore
from archiver.store.base import ArchiveStore, SnapshotFeed
from archiver.store.realtime import FirebaseTree, MemoryTree, TreeClient
from archiver.store.sql import SqlArchiveStore
from archiver.store.tree import TreeArchiveStore
from archiver.utils.filesystem import ensure_data_dirs

logger = logging.getLogger(__name__)


class Backend(ABC):
    name: str

    def __init__(self, files: FileStore):
        self.files = files
        self.feed = SnapshotFeed(self._load, self._watch)

    @abstractmethod
    @contextmanager
    def store(self) -> Iterator[ArchiveStore]:
        """A store handle for the duration of one request."""

    def _load(self, collection: str) -> list:
        with self.store() as store:
            return store.snapshot(collection)

    # Adapters without their own change notifications publish after commit
    _watch: Callable | None = None

    def close(self) -> None:
        pass


class SqlBackend(Backend):
    def __init__(self, engine: Engine, files: FileStore, name: str = "sql"):
        self.name = name
        self.engine = engine
        self._sessions = get_sessionmaker(engine)
        super().__init__(files)

    @contextmanager
    def store(self) -> Iterator[ArchiveStore]:
        db = self._sessions()
        try:
            yield SqlArchiveStore(db, self.feed)
        finally:
            db.close()

    def close(self) -> None:
        self.engine.dispose()


class TreeBackend(Backend):
    name = "realtime"

    def __init__(self, tree: TreeClient, files: FileStore):
        self.tree = tree
        super().__init__(files)

    @contextmanager
    def store(self) -> Iterator[ArchiveStore]:
        yield TreeArchiveStore(self.tree, self.feed)

    def _watch(self, collection: str, notify: Callable[[], None]) -> Callable[[], None]:
        return self.tree.listen(collection, notify)

    def close(self) -> None:
        self.tree.close()


def build_file_store(config: Settings) -> FileStore:
    if config.resolved_storage == "s3":
        return S3FileStore(
            config.s3_bucket,
            endpoint_url=config.s3_endpoint_url,
            region=config.s3_region,
            access_key_id=config.s3_access_key_id,
            secret_access_key=config.s3_secret_access_key,
        )
    return LocalFileStore(config.resolved_storage_dir)


def build_backend(config: Settings) -> Backend:
    files = build_file_store(config)

    if config.backend in ("sql", "supabase"):
        if config.backend == "supabase" and not config.database_url:
            raise ValueError("ARCHIVER_DATABASE_URL must point at the Supabase Postgres database")
        if not config.database_url:
            ensure_data_dirs(config.data_dir)
        engine = get_engine(config.resolved_database_url)
        init_db(engine)
        backend: Backend = SqlBackend(engine, files, name=config.backend)
    elif config.backend == "realtime":
        if config.firebase_database_url:
            tree: TreeClient = FirebaseTree(config.firebase_database_url, config.firebase_auth_token)
        else:
            logger.warning("No Firebase database URL configured; using an in-memory tree")
            tree = MemoryTree()
        backend = TreeBackend(tree, files)
    else:
        raise ValueError(f"Unknown backend: {config.backend!r}")

    logger.info("Archive backend: %s, file storage: %s", backend.name, files.name)
    return backend
