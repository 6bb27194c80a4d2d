"""Presentation layer for the news feed simulator."""
