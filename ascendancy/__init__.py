"""
Agent Ascendancy: sentiment-driven paper-trading agent.

Application package root. This is a modular monolith using
hexagonal architecture (ports & adapters).

Bounded contexts:
    - trading: Signal collection, sentiment aggregation, decisioning,
      simulated portfolio ledger and reporting.

Layers:
    - domain: Pure business logic, entities, ports (ABCs), errors.
    - application: Use cases, DTOs, cycle orchestration.
    - infrastructure: Adapters (market data, feeds, LLM, DB) implementing domain ports.
    - interfaces: FastAPI routers, Pydantic schemas.
    - shared: Cross-cutting concerns (errors, security, logging).
"""
