from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def upsert(db: AsyncSession, model, values: dict, conflict_on: list, update_fields: list):
    """INSERT ... ON CONFLICT (conflict_on) DO UPDATE SET update_fields as one statement."""
    dialect = db.get_bind().dialect.name
    insert = _INSERTS.get(dialect)
    if insert is None:
        raise NotImplementedError(f"upsert is not supported on {dialect}")

    stmt = insert(model).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=conflict_on,
        set_={field: stmt.excluded[field] for field in update_fields},
    )
