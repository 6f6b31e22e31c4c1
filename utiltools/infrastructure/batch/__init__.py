"""Batch Execution.

Bounded-concurrency batch runner and the pluggable operation executors.
Bounded Context: Batch Processing
"""
