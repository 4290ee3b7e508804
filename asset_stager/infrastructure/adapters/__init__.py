from .asset_manager import AssetManager
from .cache_store import CacheStore
from .catalog_resolver import CatalogResolver
from .progress import NullProgressReporter, RichProgressReporter, make_progress_reporter
from .transport_ftp import FTPTransport
from .transport_http import HTTPTransport

__all__ = [
    "AssetManager",
    "CacheStore",
    "CatalogResolver",
    "NullProgressReporter",
    "RichProgressReporter",
    "make_progress_reporter",
    "FTPTransport",
    "HTTPTransport",
]
