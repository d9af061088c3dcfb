"""Order printer worker: prints new orders on network thermal printers."""

__version__ = "1.0.0"
