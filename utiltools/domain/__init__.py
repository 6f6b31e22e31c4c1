"""Domain Layer: ports, value objects, models, events and errors.

Nothing in here performs I/O or owns process state.
"""
