"""bundleview - local preview server for built web applications."""

__version__ = "0.1.0"
