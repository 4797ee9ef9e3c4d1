"""Configuration, logging, caching and wiring shared by the whole backend."""
