"""Fetch Cloud Foundry objects and turn spaces, stacks and tasks into metric samples."""

__version__ = "0.1.0"