"""
Project scaffolding for ``docmigrate init``.

Writes a ``.env`` template with the connection variables and a
``migration.py`` template exposing the ``migration`` spec that
``docmigrate run`` loads.
"""

from __future__ import annotations

import logging
from pathlib import Path

from docmigrate.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_TEMPLATE = """\
COSMOSDB_CONNECTION=
COSMOSDB_DATABASE=
COSMOSDB_CONTAINER=
"""

MIGRATION_TEMPLATE = '''\
"""Migration run by `docmigrate run migration.py`."""

from docmigrate.migration import CreateMigration, DeleteMigration, UpdateMigration
from docmigrate.sources import CsvFileSource, LiteralSource
from docmigrate.stores import QueryParameter, QuerySpec


def archive(document):
    return {**document, "status": "archived", "previousStatus": document["status"]}


def unarchive(document):
    restored = {**document, "status": document["previousStatus"]}
    del restored["previousStatus"]
    return restored


# Pick exactly one of the variants below and assign it to `migration`.
#
# migration = CreateMigration(source=LiteralSource([{"id": "1", "tenantId": "t1"}]))
#
# migration = CreateMigration(source=CsvFileSource("documents.csv"))
#
# migration = UpdateMigration(
#     query=QuerySpec("SELECT * FROM c WHERE c.type = @type", (QueryParameter("@type", "order"),)),
#     transform=archive,
#     rollback=unarchive,
# )
#
# migration = DeleteMigration(
#     query="SELECT c.id, c.tenantId FROM c WHERE c.type = 'appProductsByDay'",
#     partition_key=lambda document: document.get("tenantId", ""),
# )

migration = None
'''


def write_templates(directory: Path, *, force: bool = False) -> list[Path]:
    """
    Write the ``.env`` and ``migration.py`` templates.

    Args:
        directory: Target directory (created if missing).
        force: Overwrite existing files.

    Returns:
        Paths written.

    Raises:
        ConfigurationError: If a file exists and ``force`` is False.
    """
    targets = {
        directory / ".env": ENV_TEMPLATE,
        directory / "migration.py": MIGRATION_TEMPLATE,
    }
    existing = [path for path in targets if path.exists()]
    if existing and not force:
        raise ConfigurationError(
            f"Refusing to overwrite {', '.join(str(path) for path in existing)} (use --force)"
        )

    directory.mkdir(parents=True, exist_ok=True)
    for path, content in targets.items():
        path.write_text(content, encoding="utf-8")
        logger.info("Wrote %s", path)
    return list(targets)


__all__ = ["ENV_TEMPLATE", "MIGRATION_TEMPLATE", "write_templates"]
