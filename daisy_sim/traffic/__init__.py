"""Traffic generation for the daisy chain simulation."""
