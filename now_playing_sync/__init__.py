"""Now Playing Sync service"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("now-playing-sync")
except PackageNotFoundError:
    __version__ = "dev"
