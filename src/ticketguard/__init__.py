"""
ticketguard
===========

SLA timing & escalation engine combined with an identity-verification gate
for customer-support tickets.

Bounded contexts:
- sla: business calendar, SLA policy table, breach detection, alert
  generation and auto-escalation decisions
- security: security policy evaluation, bypass requests, violation audit log
- verification: per (ticket, user) verification gates and pending actions
- alerts: active alert store, alert rules and notification dispatch

The composition root is ``ticketguard.main.build_engine``.
"""

__version__ = "1.0.0"
