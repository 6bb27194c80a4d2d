"""Core framework systems for the news feed simulator."""
