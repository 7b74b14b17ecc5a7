"""Favorite synchronization engine for the airdex airports/airlines directory."""

__version__ = "0.1.0"
