"""Login proxy to the identity provider."""
