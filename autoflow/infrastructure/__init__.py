"""Infrastructure: persistence, engine services, messaging."""
