"""strata core: migration primitives, adapters, dialects, errors and settings."""
