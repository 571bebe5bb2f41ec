"""Application core: logging, exceptions, app factory."""
