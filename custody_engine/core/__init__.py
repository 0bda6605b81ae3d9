"""Core configuration, logging, key vault and wiring."""
