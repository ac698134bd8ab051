"""Guardian–student link reconciliation over a record store."""

__version__ = "0.1.0"

from .startup import bootstrap  # noqa: E402

__all__ = ["__version__", "bootstrap"]
