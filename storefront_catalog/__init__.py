"""Storefront catalog.

Product retrieval for a storefront: cache, search index and commerce
platform prices reconciled into display-ready products.
"""

__version__ = "0.1.0"
