"""shelfscan - photograph a bookshelf, catalogue the books."""

__version__ = "0.1.0"
