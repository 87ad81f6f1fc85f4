from sqlalchemy import create_engine, Engine
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import sessionmaker, Session as OrmSession

# Bound to an engine by `IndexerProcessorServer.init_db_tables`.
# Rows are read after the session commits, so keep them loaded.
Session = sessionmaker(expire_on_commit=False)


def create_db_engine(connection_uri: str) -> Engine:
    return create_engine(connection_uri, pool_pre_ping=True)


def insert_for(session: OrmSession, model):
    """Returns a dialect specific INSERT supporting ON CONFLICT clauses."""
    dialect_name = session.get_bind().dialect.name
    match dialect_name:
        case "postgresql":
            return postgresql.insert(model)
        case "sqlite":
            return sqlite.insert(model)
        case _:
            raise ValueError(f"Upserts are not supported for dialect {dialect_name}")
