"""Application layer – event sourcing ports and the cache port."""
