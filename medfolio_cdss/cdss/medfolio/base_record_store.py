from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional
import importlib
import logging

logger = logging.getLogger(__name__)

Snapshot = List[Dict[str, Any]]
SnapshotCallback = Callable[[Snapshot], None]


class BaseRecordStore(ABC):
    """
    Abstract base class for the document store holding patient records.

    Documents live in collections addressed by path: top-level collections
    ("patients", "doctors") or sub-collections of a document
    ("patients/<id>/prescriptions"). Every document is a JSON-like dict; the
    store returns it with its id under the "id" key.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the record store instance.

        Args:
            config (Optional[Dict[str, Any]]): Configuration dictionary
                with connection parameters or any other settings needed by
                concrete implementations.
        """
        self.config = config or {}

    @abstractmethod
    def get_record(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """
        Read one document by id.

        Returns:
            The document, or None when it does not exist.
        """
        pass

    @abstractmethod
    def set_record(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> Dict[str, Any]:
        """
        Write a document by id.

        Args:
            merge (bool): When True, top-level keys of data are merged into the
                existing document instead of replacing it.

        Returns:
            The stored document.
        """
        pass

    @abstractmethod
    def add_record(self, collection: str, data: Dict[str, Any]) -> str:
        """Create a document with a generated id and return the id."""
        pass

    @abstractmethod
    def query_records(self, collection: str) -> Snapshot:
        """Return every document of a collection in insertion order."""
        pass

    @abstractmethod
    def subscribe(self, collection: str, callback: SnapshotCallback) -> Callable[[], None]:
        """
        Listen to a collection.

        The callback receives the current snapshot right away and a fresh one
        after every write to the collection.

        Returns:
            A function that removes the subscription.
        """
        pass


def validate_collection_path(collection: str) -> List[str]:
    """
    Check a collection path and return its segments.

    Collection paths have an odd number of non-empty segments:
    "patients", "patients/<id>/prescriptions".
    """
    if not isinstance(collection, str) or not collection.strip():
        raise ValueError("Collection path cannot be empty")
    segments = collection.split("/")
    if any(not s.strip() for s in segments):
        raise ValueError(f"Invalid collection path: {collection!r}")
    if len(segments) % 2 == 0:
        raise ValueError(f"Path {collection!r} points to a document, not a collection")
    return segments


def load_record_store(module_path: str, class_name: str, config: Optional[Dict[str, Any]] = None) -> BaseRecordStore:
    """
    Load a record store class by module path and class name.

    Args:
        module_path (str): The module path (e.g. 'cdss.medfolio.sql_record_store')
        class_name (str): The class name (e.g. 'SQLRecordStore')
        config (Optional[Dict[str, Any]]): Configuration for the store
    """
    try:
        if module_path.startswith('.'):
            current_package = __name__.rsplit('.', 1)[0] if '.' in __name__ else None
            module = importlib.import_module(module_path, package=current_package)
        else:
            module = importlib.import_module(module_path)

        store_class = getattr(module, class_name)
    except ImportError:
        logger.error("Error importing module '%s'", module_path)
        raise
    except AttributeError:
        logger.error("Class '%s' not found in module '%s'", class_name, module_path)
        raise

    if not isinstance(store_class, type) or not issubclass(store_class, BaseRecordStore):
        raise TypeError(f"{class_name} is not a subclass of BaseRecordStore")

    store = store_class(config)
    logger.info("Loaded record store %s from %s", store_class.__name__, module_path)
    return store
