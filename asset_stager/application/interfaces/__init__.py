from .progress import IProgressReporter
from .transport import ITransport, IRemoteLister
from .asset_manager import IAssetManager

__all__ = [
    "IProgressReporter",
    "ITransport",
    "IRemoteLister",
    "IAssetManager",
]
