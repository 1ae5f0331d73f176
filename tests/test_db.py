from sqlalchemy import create_engine, create_mock_engine, inspect

from agentforge.infrastructure.db import init_db


def test_init_db_creates_tables_on_sqlite() -> None:
    engine = create_engine("sqlite://")
    init_db(engine)
    assert {"chat_messages", "daily_summaries"} <= set(inspect(engine).get_table_names())
    engine.dispose()


def test_init_db_leaves_other_databases_to_alembic() -> None:
    executed: list[object] = []
    engine = create_mock_engine("postgresql://", lambda sql, *a, **kw: executed.append(sql))

    init_db(engine)
    assert executed == []
