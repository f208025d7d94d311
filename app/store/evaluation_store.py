from contextlib import asynccontextmanager
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..core.database import create_engine, create_session_factory, create_tables, close_db
from ..core.exceptions import ConstraintViolation, StoreError
from ..models.evaluation import Evaluation, KEY_COLUMNS, MUTABLE_COLUMNS
import logging

logger = logging.getLogger(__name__)

# Upsert retries when another writer inserts the key between UPDATE and INSERT
_UPSERT_ATTEMPTS = 3


class EvaluationKey(NamedTuple):
    week: str
    student_id: int
    evaluation_type: str


class EvaluationStore:
    """
    Persistence for evaluations, one table with a unique
    (week, student_id, evaluation_type) key.

    The store owns its engine: call open() on process start and close() on
    shutdown, or use it as an async context manager.
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self.echo = echo
        self._engine = None
        self._sessions = None
        self._insert = sqlite.insert

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    async def open(self):
        if self._engine is not None:
            return
        self._engine = create_engine(self.database_url, echo=self.echo)
        self._sessions = create_session_factory(self._engine)
        if self._engine.dialect.name == "postgresql":
            self._insert = postgresql.insert
        logger.info(f"Evaluation store connected ({self._engine.dialect.name})")
        await self.initialize()

    async def close(self):
        if self._engine is None:
            return
        engine = self._engine
        self._engine = None
        self._sessions = None
        await close_db(engine)
        logger.info("Evaluation store closed")

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def initialize(self):
        """Create the evaluations table if missing. Existing rows are left untouched."""
        if self._engine is None:
            raise StoreError("Evaluation store is not open")
        await create_tables(self._engine)

    @asynccontextmanager
    async def _session(self, action: str):
        if self._sessions is None:
            raise StoreError("Evaluation store is not open")
        async with self._sessions() as session:
            try:
                yield session
            except IntegrityError as e:
                await session.rollback()
                message = str(e.orig)
                logger.error(f"Constraint violation while {action}: {message}")
                raise ConstraintViolation(message) from e
            except SQLAlchemyError as e:
                await session.rollback()
                message = str(getattr(e, "orig", None) or e)
                logger.error(f"Database error while {action}: {message}")
                raise StoreError(message) from e

    @staticmethod
    def _key_filter(key: EvaluationKey):
        return (
            Evaluation.week == key.week,
            Evaluation.student_id == key.student_id,
            Evaluation.evaluation_type == key.evaluation_type,
        )

    async def insert(self, record: Dict[str, Any]) -> int:
        """Insert a new evaluation and return its id. Raises ConstraintViolation on a duplicate key."""
        async with self._session("inserting evaluation") as session:
            row = Evaluation(**record)
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return row.id

    async def update(self, key: EvaluationKey, fields: Dict[str, Any]) -> int:
        """
        Overwrite the mutable fields of the evaluation matching key.
        Returns the number of matching rows, 0 when no evaluation matches.
        Fields outside the mutable columns are ignored.
        """
        changes = {name: value for name, value in fields.items() if name in MUTABLE_COLUMNS}
        async with self._session("updating evaluation") as session:
            if not changes:
                result = await session.execute(
                    select(func.count(Evaluation.id)).where(*self._key_filter(key))
                )
                return result.scalar_one()
            result = await session.execute(
                update(Evaluation)
                .where(*self._key_filter(key))
                .values(**changes)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return result.rowcount

    async def upsert(self, record: Dict[str, Any]) -> Tuple[int, bool]:
        """
        Overwrite the mutable fields of the row holding the evaluation's key,
        or insert the evaluation when no row holds it. Returns (id, created).

        Runs as UPDATE .. RETURNING followed by INSERT .. ON CONFLICT DO NOTHING
        in the same transaction, so two writers on one key never hit the unique
        constraint, and an update never needs the insert-only columns.
        """
        key = EvaluationKey(*(record.get(name) for name in KEY_COLUMNS))
        changes = {name: record.get(name) for name in MUTABLE_COLUMNS}

        async with self._session("upserting evaluation") as session:
            for attempt in range(1, _UPSERT_ATTEMPTS + 1):
                updated = await session.execute(
                    update(Evaluation)
                    .where(*self._key_filter(key))
                    .values(**changes)
                    .returning(Evaluation.id)
                    .execution_options(synchronize_session=False)
                )
                existing_id = updated.scalar_one_or_none()
                if existing_id is not None:
                    await session.commit()
                    return existing_id, False

                inserted = await session.execute(
                    self._insert(Evaluation)
                    .values(**record)
                    .on_conflict_do_nothing(index_elements=list(KEY_COLUMNS))
                    .returning(Evaluation.id)
                )
                new_id = inserted.scalar_one_or_none()
                if new_id is not None:
                    await session.commit()
                    return new_id, True

                logger.warning(f"Evaluation {key} appeared during upsert (attempt {attempt})")

            await session.rollback()
        raise StoreError(f"Could not upsert evaluation {tuple(key)}")

    async def find_by_key(self, key: EvaluationKey) -> Optional[Evaluation]:
        async with self._session("reading evaluation") as session:
            result = await session.execute(
                select(Evaluation).where(*self._key_filter(key))
            )
            return result.scalar_one_or_none()

    async def list_all(self) -> List[Evaluation]:
        """All evaluations, newest week first (string order on week)"""
        async with self._session("listing evaluations") as session:
            result = await session.execute(
                select(Evaluation).order_by(Evaluation.week.desc(), Evaluation.id)
            )
            return list(result.scalars().all())

    async def list_by_student(self, student_id: int) -> List[Evaluation]:
        async with self._session("listing student evaluations") as session:
            result = await session.execute(
                select(Evaluation)
                .where(Evaluation.student_id == student_id)
                .order_by(Evaluation.week.desc(), Evaluation.id)
            )
            return list(result.scalars().all())

    async def delete_by_id(self, evaluation_id: int) -> int:
        """Delete one evaluation, returns the number of removed rows (0 or 1)"""
        async with self._session("deleting evaluation") as session:
            result = await session.execute(
                delete(Evaluation)
                .where(Evaluation.id == evaluation_id)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return result.rowcount
