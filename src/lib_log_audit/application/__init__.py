"""Application layer: ports and use cases of the capture pipeline."""
