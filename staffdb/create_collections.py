import logging

from pymongo.database import Database
from pymongo.errors import CollectionInvalid, OperationFailure

from staffdb.schema import collections, unique_keys

logger = logging.getLogger(__name__)


def create_collections(db: Database) -> dict:
    """Create each collection if needed, attach its $jsonSchema validator and
    build a unique index for each of its key fields.

    Returns a mapping of collection name to whether both steps succeeded.
    """
    applied = {}
    for name, schema in collections.items():
        try:
            db.create_collection(name)
        except CollectionInvalid:
            # already exists
            pass

        ok = True
        try:
            db.command("collMod", name, validator={"$jsonSchema": schema})
            logger.info("Created/updated collection '%s' with validation.", name)
        except OperationFailure as e:
            logger.warning("Failed to apply validator to '%s': %s", name, e)
            ok = False

        for key in unique_keys.get(name, []):
            try:
                db[name].create_index(key, unique=True)
                logger.info("Ensured unique index on '%s.%s'.", name, key)
            except OperationFailure as e:
                logger.warning("Failed to create unique index on '%s.%s': %s", name, key, e)
                ok = False
        applied[name] = ok
    return applied


if __name__ == "__main__":
    from staffdb.bootstrap import BootstrapSequencer

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    BootstrapSequencer().run_or_exit(lambda handle: create_collections(handle.database))
