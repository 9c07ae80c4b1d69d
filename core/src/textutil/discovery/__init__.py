"""Plugin source discovery collaborators."""

from textutil.discovery.directory import DirectorySourceProvider

__all__ = ["DirectorySourceProvider"]
