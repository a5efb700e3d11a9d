"""
Alerts Module
=============

Bounded Context for SLA alert handling.

Responsibilities:
- Store active alerts idempotently by alert id
- Match alerts against configurable rules (any condition matches)
- Run rule actions: notifications, auto-assign/escalate hooks, deferred actions
- Track acknowledgements and alert statistics
"""
