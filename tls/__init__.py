"""TLS configuration checks."""
