"""Reading lists, up-next priorities and a private reading circle."""

__version__ = "0.1.0"
