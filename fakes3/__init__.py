"""In-memory fake of the Amazon S3 API for use in tests."""

__version__ = "0.1.0"