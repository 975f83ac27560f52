"""Crawl a listing of zip archives and feed their entries into Redis."""

__version__ = "0.1.0"
