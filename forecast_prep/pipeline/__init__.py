"""Auditable pipeline stages wrapping the feature dataset build."""
