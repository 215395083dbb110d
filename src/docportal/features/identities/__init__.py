"""Identity administration feature."""
