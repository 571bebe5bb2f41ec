"""
Services module for Local Gate.

Subpackages:
- context: pack storage, ranking, redaction, formatting and reference resolution
- guard: send-time request sanitizing and runtime target resolution
- utils: metrics
"""

__all__ = [
    "context",
    "guard",
    "utils",
]
