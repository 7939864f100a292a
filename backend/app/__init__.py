"""A-share market data application layer: clients, storage, services."""
