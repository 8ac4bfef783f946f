"""python -m pharmacy_erp [db_path]: create or open the database."""
import sys

from .config import DB_PATH, SETTINGS
from .constants import APP_NAME, TABLE_SCHEMA_VERSION
from .database import SchemaVersionError, get_connection
from .utils.loggers import get_logger


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    log = get_logger()
    target = argv[0] if argv else DB_PATH
    try:
        conn = get_connection(target)
    except SchemaVersionError as e:
        log.error("%s cannot open %s: %s", APP_NAME, target, e)
        return 1
    try:
        version = conn.execute(f"SELECT version FROM {TABLE_SCHEMA_VERSION} WHERE id=1").fetchone()["version"]
    finally:
        conn.close()
    log.info("%s database ready at %s (schema %s, avg price policy %s)",
             APP_NAME, target, version, SETTINGS.avg_price_policy)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
