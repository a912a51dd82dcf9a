"""Shared helpers for domains, whitelists and page keywords."""
