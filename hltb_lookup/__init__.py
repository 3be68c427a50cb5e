"""HLTB Lookup - Resolve HowLongToBeat completion times for Steam games."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("hltb-lookup")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.1.0"
