"""Parse fabric diagnostic logs and serve stored results over a JSON WSGI API."""

__version__ = "0.1.0"