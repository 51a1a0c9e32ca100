"""WedStay marketplace core — vendor, product, inquiry and order lifecycles."""

__version__ = "0.4.0"
