"""Service layer: stores, caches, and use-case services for entries and chat."""
