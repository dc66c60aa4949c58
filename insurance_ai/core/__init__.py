"""
Core services: model gateway, document store, email transport and retry policy.
"""
