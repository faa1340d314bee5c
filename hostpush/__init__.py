"""Firebase Hosting setup and single-commit GitHub pushes for static projects."""

__version__ = "0.1.0"
