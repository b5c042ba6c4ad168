"""Core primitives for cronspine: models, errors, logging, settings and scheduling."""
