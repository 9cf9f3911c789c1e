from kawa.db import ensure_schema, q


def _columns(conn, table):
    return {r["name"] for r in q(conn, f"PRAGMA table_info({table})")}


def test_schema_is_idempotent(conn):
    conn.execute("INSERT INTO products (name, price) VALUES ('Chain kit', 700000)")
    conn.commit()
    ensure_schema(conn)

    assert q(conn, "SELECT COUNT(1) AS n FROM products")[0]["n"] == 1
    assert "payment_fee" in _columns(conn, "orders")
    assert "mailbox_tracking" in _columns(conn, "batches")
