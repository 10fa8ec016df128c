"""Snapshot a source repository into a JSON record export or a highlighted HTML document."""

__version__ = "0.1.0"
