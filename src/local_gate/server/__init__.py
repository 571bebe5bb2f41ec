"""Server entry points."""
