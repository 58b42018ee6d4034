"""Shell history entries, encryption, shell hook setup and client configuration."""

__version__ = "0.1.0"