"""Loading raw observation tables from disk."""
