"""
Shared infrastructure: base model, errors, logging, authentication and permission checks.
"""
