"""
Infrastructure Layer
=====================

Low-level technical concerns shared by the bounded contexts:
- Logging setup
"""
