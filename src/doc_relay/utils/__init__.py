"""Shared utilities for doc_relay."""
