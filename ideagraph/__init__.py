"""Knowledge graph construction from uploaded PDF documents."""

__version__ = "0.1.0"
