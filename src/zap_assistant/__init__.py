"""Messaging automation assistant built around a small dependency injection runtime."""

__version__ = "0.1.0"
