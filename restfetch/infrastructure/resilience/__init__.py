"""API Resilience Implementations.

Contains the rate-limit tracker and the retry executor that honours it.
Bounded Context: API Resilience
"""
