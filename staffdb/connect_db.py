# connect_db.py - open and verify the MongoDB connection
import logging
from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from staffdb.config import DEFAULT_DB_NAME, Settings
from staffdb.errors import ConnectError

logger = logging.getLogger(__name__)


class ConnectionHandle:
    """A live client plus the database the app works in.

    Created by `connect`; closing it releases the client's sockets.
    """

    def __init__(self, client: MongoClient, database: Database):
        self.client = client
        self.database = database
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def ping(self) -> dict:
        return self.client.admin.command("ping")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.client.close()
        logger.info("Closed MongoDB connection")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def connect(settings: Settings) -> ConnectionHandle:
    """Make exactly one connection attempt and verify it with a ping.

    Blocks until the driver answers or its server selection timeout expires.
    The database is DB_NAME when set, else the one named in the URI, else
    `test`. Raises ConnectError wrapping the driver error on any failure.
    """
    options = {"serverSelectionTimeoutMS": settings.server_selection_timeout_ms}
    if settings.tls_allow_invalid_certificates:
        options["tls"] = True
        options["tlsAllowInvalidCertificates"] = True

    client: Optional[MongoClient] = None
    try:
        client = MongoClient(settings.mongo_uri, **options)
        if settings.db_name:
            database = client[settings.db_name]
        else:
            database = client.get_default_database(DEFAULT_DB_NAME)
        client.admin.command("ping")
    except (PyMongoError, ValueError) as e:
        # pymongo reports a malformed host or port in the URI as ValueError
        if client is not None:
            client.close()
        raise ConnectError(settings.redacted_uri, e) from e

    logger.info("Connected to MongoDB database: %s", database.name)
    return ConnectionHandle(client, database)


if __name__ == "__main__":
    from staffdb.bootstrap import BootstrapSequencer

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    BootstrapSequencer().run_or_exit(lambda handle: logger.info("Ping: %s", handle.ping()))
