"""Application layer: ports, DTOs, pure services, and use cases."""
