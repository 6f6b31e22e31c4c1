"""Scheduling primitives: the system clock and cancellable periodic tasks."""
