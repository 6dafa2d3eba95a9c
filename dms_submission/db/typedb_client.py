"""
TypeDB Connection and Schema Management

Opens the TypeDB 3.x driver and makes sure the submission database and
schema exist before the item store is used.
"""

import logging
from pathlib import Path
from typing import Optional

from dms_submission.config import config
from dms_submission.schema import SCHEMA_PATH

logger = logging.getLogger(__name__)


class TypeDBConnection:
    """Manages the TypeDB driver and database bootstrap."""

    def __init__(self, address: Optional[str] = None, database: Optional[str] = None):
        self.address = address or config.typedb.address
        self.database = database or config.typedb.database
        self._driver = None

    @property
    def driver(self):
        return self._driver

    def connect(self):
        """Establish connection to TypeDB."""
        from typedb.driver import Credentials, DriverOptions, TypeDB

        if self._driver is None:
            creds = Credentials(config.typedb.username, config.typedb.password)
            opts = DriverOptions(is_tls_enabled=config.typedb.tls_enabled)
            self._driver = TypeDB.driver(self.address, creds, opts)
            logger.info(f"Connected to TypeDB at {self.address}")
        return self._driver

    def close(self):
        """Close the connection."""
        if self._driver:
            self._driver.close()
            self._driver = None

    def ensure_database(self):
        """Create database if it doesn't exist."""
        driver = self.connect()
        databases = driver.databases
        if not databases.contains(self.database):
            databases.create(self.database)
            logger.info(f"Created database: {self.database}")
        else:
            logger.info(f"Database already exists: {self.database}")

    def load_schema(self, schema_path: Path = SCHEMA_PATH):
        """Load the submission-item schema. Defines are idempotent."""
        from typedb.driver import TransactionType

        driver = self.connect()
        schema = schema_path.read_text(encoding="utf-8")
        with driver.transaction(self.database, TransactionType.SCHEMA) as tx:
            tx.query(schema).resolve()
            tx.commit()
        logger.info(f"Schema loaded: {schema_path.name}")
