"""Adapters connecting the domain to storage and payload formats."""
