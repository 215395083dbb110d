"""Grants, grant resolution, and path-scope enforcement."""
