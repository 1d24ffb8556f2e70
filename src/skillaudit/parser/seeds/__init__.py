"""Seed vulnerability skills used when no skills directory exists."""
