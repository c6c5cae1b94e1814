"""Skooly learning-management API."""
