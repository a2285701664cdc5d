from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from config.config import Config
from casaora.models.base import Base


def _engine_options(url: str) -> dict:
    # SQLite connections are shared between Flask worker threads and cron scripts
    if url.startswith('sqlite'):
        return {'connect_args': {'check_same_thread': False}}
    return {'pool_pre_ping': True}


engine = create_engine(Config.DATABASE_URL, **_engine_options(Config.DATABASE_URL))

# Instances stay readable after the session closes
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db():
    """Create the users, background_checks, webhook_events and pricing_controls tables"""
    import casaora.models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def drop_db():
    Base.metadata.drop_all(bind=engine)


@contextmanager
def get_db():
    """Provide a transactional scope; commits on success, rolls back on any error"""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


class DatabaseManager:
    """Thin CRUD helper bound to one model class.

    Every call opens its own transaction, so returned instances are detached
    snapshots. Filters are equality matches on column names.
    """

    def __init__(self, model_class):
        self.model_class = model_class

    def _query(self, db, **filters):
        query = db.query(self.model_class)
        for column, value in filters.items():
            query = query.filter(getattr(self.model_class, column) == value)
        return query

    def create(self, **fields):
        with get_db() as db:
            instance = self.model_class(**fields)
            db.add(instance)
            db.flush()
            db.refresh(instance)
            return instance

    def get(self, id):
        if id is None:
            return None
        with get_db() as db:
            return db.get(self.model_class, id)

    def get_by(self, **filters):
        with get_db() as db:
            return self._query(db, **filters).first()

    def filter(self, **filters):
        with get_db() as db:
            return self._query(db, **filters).all()

    def update(self, id, **fields):
        """Set fields on a record; returns None when the id is unknown"""
        with get_db() as db:
            instance = db.get(self.model_class, id)
            if instance is None:
                return None
            for column, value in fields.items():
                setattr(instance, column, value)
            db.flush()
            db.refresh(instance)
            return instance

    def count(self, **filters):
        with get_db() as db:
            return self._query(db, **filters).count()
