"""Common utilities and helpers used across the workspace service."""

__all__ = [
    "errors",
    "exceptions",
    "logging",
    "middleware",
    "pagination",
    "problem_details",
    "schema",
]
