"""Plan Runner - worker/reviewer loop over a markdown task checklist."""
