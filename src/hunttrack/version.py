"""Version information for HuntTrack."""

__version__ = "0.1.0"
