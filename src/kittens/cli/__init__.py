"""Command line tools for the kittens application."""
