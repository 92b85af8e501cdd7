"""Cross-cutting concerns: logging, error handling, security."""
