"""Weekly shift generation and rest assignment for shift-based businesses.

Modules:
- config: load and validate engine configuration (YAML or JSON)
- errors: exception types raised at the boundary
- domain: immutable engine I/O, boundary validation, ORM models and repositories
- services: interval math, conflicts, demand, availability, scoring, history, calendar
- engine: greedy shift assignment, rest assignment and the orchestrator
- report: plain-text result summaries
- cli: command-line interface entrypoints
"""

__all__ = [
    "config",
    "errors",
    "domain",
    "services",
    "engine",
    "report",
    "cli",
]
