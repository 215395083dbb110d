"""HTTP glue for authentication and error translation."""
