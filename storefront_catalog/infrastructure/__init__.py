"""Infrastructure layer - configuration, persistence and HTTP clients."""
