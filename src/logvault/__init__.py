"""Log ingest daemon: bus records to hourly partition files, with retention."""

__version__ = "0.1.0"
