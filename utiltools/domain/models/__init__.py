"""Domain models: value objects and state records for the four primitives."""
