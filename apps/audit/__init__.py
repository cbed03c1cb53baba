"""
Audit app: append-only, SHA-256 hash-chained log of billing mutations.

Services call `log_action` inside their own transaction; `verify_chain`
recomputes every hash and reports broken links.
"""
