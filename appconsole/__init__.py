"""appconsole — administration console for app development containers."""

__version__ = "0.1.0"
