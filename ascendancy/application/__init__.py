"""
Application layer package.

Contains use cases that orchestrate domain logic through ports.
No framework imports and no direct infrastructure access.
"""
