"""Temporary mailbox service: an SMTP receiver, memory or Redis storage, verification-code extraction and a Flask JSON API."""

__version__ = "0.1.0"