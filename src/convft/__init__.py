"""convft: convert a file tree to a single text artifact and back."""

__version__ = "0.1.0"
