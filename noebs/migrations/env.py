"""
Alembic environment for the noebs store.

Only online migrations over a connection supplied by noebs.migrate are
supported. The caller owns the surrounding transaction.
"""

from alembic import context


connection = context.config.attributes.get("connection")

if connection is None:
    raise RuntimeError("noebs migrations must be run through noebs.migrate.run_migrations")

context.configure(connection=connection, target_metadata=None)

with context.begin_transaction():
    context.run_migrations()
