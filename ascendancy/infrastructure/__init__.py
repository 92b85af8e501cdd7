"""
Infrastructure layer package.

Adapters implementing domain ports: HTTP data sources, LLM access
and persistence.
"""
