"""Persistence seam for the sale workflows."""
from app.stores.base import PosStore
from app.stores.sqlalchemy_store import SqlAlchemyStore


def get_store(session=None) -> PosStore:
    """Store bound to the given session, or to the current app's session."""
    if session is None:
        from app.database import get_session
        session = get_session()
    return SqlAlchemyStore(session)


__all__ = ['PosStore', 'SqlAlchemyStore', 'get_store']
