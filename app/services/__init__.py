"""
Services module.

- goalserve: feed client, typed records and normalizer
- sync: orchestrator and per-record reconciler
"""
