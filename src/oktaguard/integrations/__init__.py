"""Framework integrations; each module needs its framework installed."""
