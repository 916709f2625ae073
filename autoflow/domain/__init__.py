"""Domain layer: workflow vocabulary, entities, and exceptions. No persistence concerns."""
