"""md2docx - convert batches of Markdown items to DOCX documents."""

__version__ = "0.1.0"
