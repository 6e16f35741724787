"""FileKeeper: user accounts with token auth and uploaded-file management."""

__version__ = "0.1.0"
