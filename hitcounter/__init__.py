"""
Hit counter service.

A FastAPI application that counts hits per identifier in Redis, falls back
to in-process counters when Redis is unset or failing, and renders the
counts as JSON, plain text or SVG badges.
"""

__version__ = "0.1.0"
