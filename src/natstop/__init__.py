"""natstop - top-style monitor for NATS servers."""

__version__ = "0.2.0"
