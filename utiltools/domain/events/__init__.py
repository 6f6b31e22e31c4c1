"""Domain events emitted by the retry, batch and rate-limit components."""
