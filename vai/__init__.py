"""Voice action intent pipeline for tabletop RPG commands."""

__version__ = "0.1.0"
