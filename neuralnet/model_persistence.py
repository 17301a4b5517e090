"""
model_persistence.py
~~~~~~~~~~~~~~~~~~~~

SQLite-based store for trained networks.
Each row keeps the network document (see network_document.py) together with
queryable metadata: architecture, hyper-parameters, training status and the
final training error.
"""

import sqlite3
import json
import os
import logging
from typing import Optional, List, Dict, Any, Generator
from contextlib import contextmanager
import numpy as np

from .exceptions import DocumentFormatError
from .network_document import to_xml, from_xml

# Configure module logger
logger = logging.getLogger(__name__)


class NetworkEncoder(json.JSONEncoder):
    """Custom JSON encoder that handles numpy arrays and scalars."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.generic):
            return obj.item()
        return super().default(obj)


class ModelDatabase:
    """
    Manages the SQLite database holding persisted networks.

    The database stores:
    - Network metadata (architecture, learning rate, epochs, training status,
      final error)
    - The network document as text
    """

    def __init__(self, db_path: str = 'models/networks.db'):
        """
        Initialize the database connection.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        self._ensure_directory()
        self._initialize_schema()

    def _ensure_directory(self) -> None:
        """Create the database directory if it doesn't exist."""
        db_dir = os.path.dirname(self.db_path)
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir)

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for database connections.

        Yields:
            sqlite3.Connection: Database connection
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _initialize_schema(self) -> None:
        """Create the database schema if it doesn't exist."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS networks (
                    network_id TEXT PRIMARY KEY,
                    architecture TEXT NOT NULL,
                    learning_rate REAL NOT NULL,
                    epochs INTEGER NOT NULL,
                    document TEXT NOT NULL,
                    trained INTEGER NOT NULL DEFAULT 0,
                    error REAL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            ''')

            cursor.execute('''
                CREATE INDEX IF NOT EXISTS idx_created_at
                ON networks(created_at DESC)
            ''')

    @staticmethod
    def _row_to_metadata(row: sqlite3.Row) -> Dict[str, Any]:
        return {
            'network_id': row['network_id'],
            'architecture': json.loads(row['architecture']),
            'learning_rate': row['learning_rate'],
            'epochs': row['epochs'],
            'trained': bool(row['trained']),
            'error': row['error'],
            'created_at': row['created_at'],
            'updated_at': row['updated_at']
        }

    def save_network_to_db(
        self,
        network,
        network_id: str,
        trained: bool = True,
        error: Optional[float] = None
    ) -> bool:
        """
        Save a network to the database, replacing any row with the same id.

        Args:
            network: Network to save
            network_id: Unique identifier for the network
            trained: Whether the network has been trained
            error: Final training error (non-negative)

        Returns:
            bool: True if successful

        Raises:
            ValueError: If error is negative or not finite
        """
        if error is not None and not (np.isfinite(error) and error >= 0.0):
            raise ValueError(
                f"Error must be a non-negative finite number, got {error}"
            )

        document = to_xml(network)
        architecture_json = json.dumps(network.sizes, cls=NetworkEncoder)

        with self._get_connection() as conn:
            cursor = conn.cursor()
            # Keep created_at of an existing row, refresh everything else
            cursor.execute('''
                INSERT INTO networks
                (network_id, architecture, learning_rate, epochs, document,
                 trained, error)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(network_id) DO UPDATE SET
                    architecture = excluded.architecture,
                    learning_rate = excluded.learning_rate,
                    epochs = excluded.epochs,
                    document = excluded.document,
                    trained = excluded.trained,
                    error = excluded.error,
                    updated_at = CURRENT_TIMESTAMP
            ''', (
                network_id,
                architecture_json,
                network.learning_rate,
                network.epochs,
                document,
                1 if trained else 0,
                None if error is None else float(error)
            ))

        logger.info(
            f"Saved network '{network_id}' with architecture "
            f"{network.sizes}, trained={trained}, error={error}"
        )
        return True

    def load_network_from_db(self, network_id: str, activation=None):
        """
        Load a network from the database.

        Args:
            network_id: Unique identifier of the network
            activation: Overrides the activation named in the document

        Returns:
            Network object or None if not found

        Raises:
            DocumentFormatError: If the stored document is corrupt
        """
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                'SELECT document FROM networks WHERE network_id = ?',
                (network_id,)
            )
            row = cursor.fetchone()

        if row is None:
            logger.warning(f"Network '{network_id}' not found")
            return None

        network = from_xml(row['document'], activation)
        logger.info(f"Loaded network '{network_id}'")
        return network

    def get_document_from_db(self, network_id: str) -> Optional[str]:
        """Return the stored network document, or None if not found."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                'SELECT document FROM networks WHERE network_id = ?',
                (network_id,)
            )
            row = cursor.fetchone()
        return None if row is None else row['document']

    def list_networks_from_db(self) -> List[Dict[str, Any]]:
        """
        List all networks with metadata, newest first.

        Returns:
            List of network metadata dictionaries
        """
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT
                    network_id,
                    architecture,
                    learning_rate,
                    epochs,
                    trained,
                    error,
                    created_at,
                    updated_at
                FROM networks
                ORDER BY created_at DESC, network_id
            ''')

            networks = []
            for row in cursor.fetchall():
                metadata = self._row_to_metadata(row)
                architecture = metadata['architecture']

                # Synapse count of each connection set
                metadata['synapses'] = [
                    architecture[i] * architecture[i + 1]
                    for i in range(len(architecture) - 1)
                ]
                networks.append(metadata)

            logger.debug(f"Listed {len(networks)} networks")
            return networks

    def delete_network_from_db(self, network_id: str) -> bool:
        """
        Delete a network from the database.

        Returns:
            bool: True if deleted, False if not found
        """
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                'DELETE FROM networks WHERE network_id = ?',
                (network_id,)
            )

            deleted = cursor.rowcount > 0
            if deleted:
                logger.info(f"Deleted network '{network_id}'")
            else:
                logger.warning(
                    f"Could not delete network '{network_id}': not found"
                )
            return deleted

    def delete_old_networks_from_db(self, days: int) -> int:
        """
        Delete networks created more than ``days`` days ago.

        Args:
            days: Age threshold in days

        Returns:
            int: Number of deleted networks

        Raises:
            ValueError: If days is negative
        """
        if days < 0:
            raise ValueError(f"days must be non-negative, got {days}")

        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM networks WHERE created_at < datetime('now', ?)",
                (f'-{days} days',)
            )
            deleted = cursor.rowcount

        logger.info(f"Deleted {deleted} network(s) older than {days} day(s)")
        return deleted

    def get_network_metadata_from_db(
        self,
        network_id: str
    ) -> Optional[Dict[str, Any]]:
        """
        Get network metadata without rebuilding the network.

        Returns:
            Metadata dictionary or None if not found
        """
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT
                    network_id,
                    architecture,
                    learning_rate,
                    epochs,
                    trained,
                    error,
                    created_at,
                    updated_at
                FROM networks
                WHERE network_id = ?
            ''', (network_id,))

            row = cursor.fetchone()
            if row is None:
                logger.warning(
                    f"Metadata for network '{network_id}' not found"
                )
                return None

            return self._row_to_metadata(row)


def _get_db(model_dir: str) -> ModelDatabase:
    return ModelDatabase(db_path=os.path.join(model_dir, 'networks.db'))


def _valid_id(network_id: str) -> bool:
    if not network_id or not isinstance(network_id, str):
        logger.error("Invalid network_id: must be a non-empty string")
        return False
    return True


def save_network(
    network,
    network_id: str,
    model_dir: str = 'models',
    trained: bool = True,
    error: Optional[float] = None
) -> bool:
    """
    Save a network to the SQLite store.

    Args:
        network: The network to save
        network_id: A unique identifier for the network
        model_dir: Directory for the database file
        trained: Whether the network has been trained
        error: Final training error of the network

    Returns:
        bool: True if the save was successful, False otherwise

    Raises:
        ValueError: If error is negative or not finite

    Example:
        >>> net = Network(2, 2, 1, learning_rate=0.005, epochs=2000)
        >>> save_network(net, "adder", trained=False)
        True
    """
    if not _valid_id(network_id):
        return False

    try:
        return _get_db(model_dir).save_network_to_db(
            network, network_id, trained, error
        )
    except ValueError:
        raise
    except sqlite3.Error as e:
        logger.error(f"Database error saving network '{network_id}': {e}")
        return False
    except Exception as e:
        logger.exception(
            f"Unexpected error saving network '{network_id}': {e}"
        )
        return False


def load_network(network_id: str, model_dir: str = 'models', activation=None):
    """
    Load a network from the SQLite store.

    Args:
        network_id: The unique identifier of the network to load
        model_dir: Directory where the database is stored
        activation: Overrides the activation named in the stored document

    Returns:
        The network, or None if it is missing or cannot be rebuilt

    Example:
        >>> net = load_network("adder")
        >>> if net:
        ...     print(f"Loaded network with sizes {net.sizes}")
    """
    if not _valid_id(network_id):
        return None

    try:
        return _get_db(model_dir).load_network_from_db(network_id, activation)
    except DocumentFormatError as e:
        logger.error(f"Corrupt document for network '{network_id}': {e}")
        return None
    except sqlite3.Error as e:
        logger.error(f"Database error loading network '{network_id}': {e}")
        return None
    except Exception as e:
        logger.exception(
            f"Unexpected error loading network '{network_id}': {e}"
        )
        return None


def get_network_document(network_id: str, model_dir: str = 'models') -> Optional[str]:
    """Return the stored network document of ``network_id``, or None."""
    if not _valid_id(network_id):
        return None

    try:
        return _get_db(model_dir).get_document_from_db(network_id)
    except sqlite3.Error as e:
        logger.error(f"Database error reading document '{network_id}': {e}")
        return None


def list_saved_networks(model_dir: str = 'models') -> List[Dict[str, Any]]:
    """
    List all saved networks with their metadata.

    Returns:
        list: A list of metadata dictionaries for each saved network
    """
    try:
        return _get_db(model_dir).list_networks_from_db()
    except sqlite3.Error as e:
        logger.error(f"Database error listing networks: {e}")
        return []
    except json.JSONDecodeError as e:
        logger.error(f"JSON decode error listing networks: {e}")
        return []


def delete_network(network_id: str, model_dir: str = 'models') -> bool:
    """
    Delete a saved network.

    Returns:
        bool: True if deletion was successful, False otherwise
    """
    if not _valid_id(network_id):
        return False

    try:
        return _get_db(model_dir).delete_network_from_db(network_id)
    except sqlite3.Error as e:
        logger.error(f"Database error deleting network '{network_id}': {e}")
        return False


def delete_old_networks(days: int = 2, model_dir: str = 'models') -> int:
    """
    Delete networks created more than ``days`` days ago.

    Returns:
        int: Number of deleted networks, -1 on database error

    Raises:
        ValueError: If days is negative
    """
    if days < 0:
        raise ValueError(f"days must be non-negative, got {days}")

    try:
        return _get_db(model_dir).delete_old_networks_from_db(days)
    except sqlite3.Error as e:
        logger.error(f"Database error deleting old networks: {e}")
        return -1


def get_network_metadata(
    network_id: str,
    model_dir: str = 'models'
) -> Optional[Dict[str, Any]]:
    """
    Get metadata for a network without rebuilding it.

    Returns:
        dict: Network metadata or None if not found
    """
    if not _valid_id(network_id):
        return None

    try:
        return _get_db(model_dir).get_network_metadata_from_db(network_id)
    except sqlite3.Error as e:
        logger.error(
            f"Database error getting metadata for '{network_id}': {e}"
        )
        return None
    except json.JSONDecodeError as e:
        logger.error(
            f"JSON decode error getting metadata for '{network_id}': {e}"
        )
        return None
