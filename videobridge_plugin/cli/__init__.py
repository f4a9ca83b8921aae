"""Command line interface for the videobridge plugin."""
