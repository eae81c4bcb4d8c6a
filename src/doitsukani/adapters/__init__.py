"""Adapters for the remote services used by doitsukani."""
