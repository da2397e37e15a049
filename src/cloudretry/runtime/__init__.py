"""Runtime layer: retry execution, cancellation, and structured logging."""
