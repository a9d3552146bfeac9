"""Cross-cutting concerns: configuration, logging, errors, pipeline and metrics."""
