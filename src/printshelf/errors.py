"""Base exception shared by every printshelf subsystem."""


class PrintshelfError(Exception):
    """Root of the printshelf exception hierarchy."""
