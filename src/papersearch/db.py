from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import DeclarativeBase, sessionmaker


class Base(DeclarativeBase):
    pass


def create_session_factory(database_url: str) -> sessionmaker:
    engine = create_engine(database_url, pool_pre_ping=True, future=True)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def ensure_schema(base_class: type[DeclarativeBase], engine) -> None:
    """Create missing tables; recreate a table whose columns lag behind the model.

    Stored values are client-side preferences (history, bookmarks), so a destructive
    rebuild is acceptable until a migration tool is introduced.
    """
    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())
    for name, table in base_class.metadata.tables.items():
        if name not in existing_tables:
            continue
        existing_columns = {col["name"] for col in inspector.get_columns(name)}
        expected_columns = {c.name for c in table.columns}
        if not expected_columns.issubset(existing_columns):
            table.drop(engine)
    base_class.metadata.create_all(engine)
