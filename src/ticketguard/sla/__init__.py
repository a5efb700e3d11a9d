"""
SLA Module
==========

Bounded Context for SLA timing and escalation.

Responsibilities:
- Count elapsed wall-clock and business hours for tickets
- Look up SLA targets and escalation tiers per priority
- Detect response, resolution and escalation breaches
- Generate due-soon, breached and escalation-required alerts
- Decide automatic escalations across configured tiers
- Compute SLA tracking updates, metrics and performance reports
- Sweep active tickets on demand (driven by an external scheduler)
"""
