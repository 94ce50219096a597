"""
Record store access layer.

The controllers never hold a SQLAlchemy session. Every call below opens a
short-lived session, runs one query or one write, and hands back detached
records. Since no session is shared between calls, independent reads can be
issued together from worker threads with concurrently().
"""

import asyncio

from fastapi.concurrency import run_in_threadpool

from locallibrary.log import get_logger


logger = get_logger("store")

# Largest value a SQLite INTEGER primary key can hold
MAX_RECORD_ID = 2**63 - 1


class RecordStore:
    """
    Generic query/update interface over the catalog tables.

    Internal Working:
    - session_factory is a sessionmaker configured with expire_on_commit=False
    - Records stay readable after their session closes; relationship data a
      record needs (Book.genre_ids) is loaded eagerly by the model
    - Lookups by reference go through explicit criteria, never lazy loads
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def find_all(self, model, *criteria, sort=None):
        """
        Return every record of model matching criteria.

        Args:
            model: ORM class to query
            criteria: SQLAlchemy filter expressions, AND-ed together
            sort: column or sequence of columns; defaults to the primary key
        """
        if sort is None:
            sort = (model.id,)
        elif not isinstance(sort, (list, tuple)):
            sort = (sort,)

        with self._session_factory() as db:
            query = db.query(model)
            if criteria:
                query = query.filter(*criteria)
            return query.order_by(*sort).all()

    def find_one(self, model, *criteria):
        with self._session_factory() as db:
            return db.query(model).filter(*criteria).first()

    def find_by_id(self, model, record_id):
        if not _storable(record_id):
            return None
        with self._session_factory() as db:
            return db.get(model, record_id)

    def create(self, record):
        """Insert record and return it carrying its store-assigned id."""
        with self._session_factory() as db:
            db.add(record)
            db.commit()
            record = _reload(db, type(record), record.id)
        logger.info("Created %s %s", type(record).__name__, record.id)
        return record

    def update_by_id(self, model, record_id, values):
        """
        Assign values to an existing record in place.

        The identifier is never part of values, so the record keeps it.

        Returns:
            The updated record, or None if record_id does not exist
        """
        if not _storable(record_id):
            return None
        with self._session_factory() as db:
            record = db.get(model, record_id)
            if record is None:
                return None
            for key, value in values.items():
                setattr(record, key, value)
            db.commit()
            record = _reload(db, model, record_id)
        logger.info("Updated %s %s", model.__name__, record_id)
        return record

    def delete_by_id(self, model, record_id):
        if not _storable(record_id):
            return False
        with self._session_factory() as db:
            record = db.get(model, record_id)
            if record is None:
                return False
            db.delete(record)
            db.commit()
        logger.info("Deleted %s %s", model.__name__, record_id)
        return True

    def count(self, model, *criteria):
        with self._session_factory() as db:
            query = db.query(model)
            if criteria:
                query = query.filter(*criteria)
            return query.count()


async def concurrently(*calls):
    """
    Run independent zero-argument store calls together on the threadpool.

    The caller suspends until all of them finish. Results come back in
    argument order; the first exception raised propagates.
    """
    return await asyncio.gather(*(run_in_threadpool(call) for call in calls))


def index_by_id(records):
    return {record.id: record for record in records}


def _storable(record_id):
    """Ids outside the INTEGER range cannot exist; querying them overflows."""
    return -MAX_RECORD_ID - 1 <= record_id <= MAX_RECORD_ID


def _reload(db, model, record_id):
    """
    Re-read a record after commit so eager relationships are loaded too.

    populate_existing forces a real query instead of an identity map hit.
    """
    return db.get(model, record_id, populate_existing=True)
