"""
Security Module
===============

Bounded Context for security policy evaluation.

Responsibilities:
- Evaluate the fixed security policies against verification status
- Record violations in an append-only audit log
- Decide bypass requests (emergency override / manager approval only)
- Report security insights and validate verification field formats
"""
