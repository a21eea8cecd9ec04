"""ESTA audit risk engine: feature extraction, factor scoring and alerting."""
