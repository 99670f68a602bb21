"""
Typesense Site Indexer

Blue/green reindexing of a statically built site's HTML pages into a
Typesense collection behind a stable alias.
"""

__version__ = "1.0.0"
