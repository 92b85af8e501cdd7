"""Trading bounded context: application layer (use cases and DTOs)."""
