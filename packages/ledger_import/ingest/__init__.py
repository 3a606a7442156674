"""Statement ingestion: decoding helpers and per-format adapters."""
