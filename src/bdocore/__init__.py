"""bdocore - filter trees and computed-field expressions for business data objects.

Builds list/count filter payloads for the backend and evaluates the
expression trees found in BDO metadata.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
