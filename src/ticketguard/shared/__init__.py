"""
Shared Kernel Module
====================

Shared infrastructure used across all bounded contexts (SLA, Security,
Verification, Alerts).

DO NOT add business logic from a bounded context to the shared kernel.
"""
