"""Subscription billing service for the blog platform."""

__version__ = "0.1.0"
