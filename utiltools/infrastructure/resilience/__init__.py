"""Resilience Implementations.

Contains the per-operation retry/backoff tracker and the fixed-window
rate limiter.
Bounded Context: API Resilience
"""
