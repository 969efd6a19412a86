"""docforge: resumable, rate-limited multi-agent document generation."""

from docforge.version import __version__

__all__ = ["__version__"]
