"""Trading bounded context: infrastructure adapters."""
