"""Life dashboard: JSON-file tables, markdown sync and readers behind a Flask API."""

__version__ = '1.0.0'
