"""
Inscription mining primitives.

Field elements, the transaction-hash layout, call encoding, the prefix
acceptance window and the error taxonomy shared by the search workers, the
coordinator and the submitter.

Exports
-------
__version__ : str
    Semantic version string for the package.
"""

from .version import __version__  # re-export

__all__ = ["__version__"]
