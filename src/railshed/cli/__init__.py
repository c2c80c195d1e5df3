"""Command line interface for railshed."""
