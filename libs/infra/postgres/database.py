"""SQLAlchemy engine, sessions and transactional unit of work."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from libs.core.application.errors import InvalidStateError
from libs.infra.postgres.models import Base

logger = logging.getLogger(__name__)


class SqlDatabase:
    """Owns the engine and the session bound to the current thread.

    Repositories call ``session()``; inside ``atomic()`` every call in the
    same thread shares one session and one transaction, outside of it each
    call runs in its own short transaction.
    """

    def __init__(
        self,
        url: str,
        statement_timeout_ms: int | None = None,
        **engine_kwargs: Any,
    ) -> None:
        engine_kwargs.setdefault("pool_pre_ping", True)
        self.engine = create_engine(url, **engine_kwargs)
        self._session_factory = sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
        )
        self._local = threading.local()

        if statement_timeout_ms and self.engine.dialect.name == "postgresql":
            _install_statement_timeout(self.engine, statement_timeout_ms)

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def drop_schema(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        if getattr(self._local, "session", None) is not None:
            yield
            return

        session = self._session_factory()
        self._local.session = session
        try:
            with session.begin():
                yield
        except IntegrityError as error:
            logger.warning("Transaction rolled back on constraint: %s", error.orig)
            raise InvalidStateError("Conflicting update, record changed concurrently") from error
        finally:
            self._local.session = None
            session.close()

    @contextmanager
    def session(self) -> Iterator[Session]:
        current = getattr(self._local, "session", None)
        if current is not None:
            yield current
            return

        with self._session_factory() as session, session.begin():
            yield session

    def dispose(self) -> None:
        self.engine.dispose()


def _install_statement_timeout(engine: Any, timeout_ms: int) -> None:
    @event.listens_for(engine, "connect")
    def _set_timeout(dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute(f"SET statement_timeout = {int(timeout_ms)}")
        cursor.close()
