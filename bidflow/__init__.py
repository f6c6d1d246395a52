"""Client-side document submission and report-access verification."""

__version__ = "0.1.0"
