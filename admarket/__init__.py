"""Advertisement marketplace on a blockchain overlay network."""

__version__ = "0.1.0"
