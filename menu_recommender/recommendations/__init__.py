"""
Menu item recommendation engine.

Responsibilities:
- Accept a recommendation request (limit, exclusions, cart, customer, sources).
- Run heuristic strategies in priority order against the item store.
- Merge, deduplicate and truncate their batches into one ordered list.
- Serve repeated requests from a TTL cache with prefix invalidation.
"""
