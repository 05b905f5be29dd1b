"""Networking: HTTP policy, retries, rate limiting."""
