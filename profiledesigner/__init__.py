"""CESMII Profile Designer: Cloud Library publishing moderation."""

__version__ = "0.3.0"
