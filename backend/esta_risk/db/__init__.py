"""Optional SQL persistence for score history and alerts."""
