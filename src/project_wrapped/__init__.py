"""Project Wrapped: turn a period of repository activity into a slide-ready summary."""

__version__ = "0.1.0"
