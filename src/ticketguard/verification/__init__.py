"""
Verification Module
===================

Bounded Context for identity-verification gates.

Responsibilities:
- Keep one gate per (ticket, user) that blocks gated actions until the
  security policies are satisfied
- Queue blocked actions and run them once verification completes
- Handle audited bypass requests
- Sweep closed gates on demand
"""
