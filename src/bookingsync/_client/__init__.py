"""Internal coordination layer: fetch cycles, change listeners and mutations."""
