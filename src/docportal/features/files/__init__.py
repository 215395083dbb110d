"""Folder browsing, manifest review, and manifest processing."""
