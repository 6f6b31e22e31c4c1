"""Infrastructure Layer: concrete implementations of the domain ports.

Cache, resilience (retry tracking, rate limiting), batch execution,
scheduling, configuration, monitoring and the console UI.
"""
