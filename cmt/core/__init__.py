"""Core migration components: executors, transfer, pipeline and monitoring."""
