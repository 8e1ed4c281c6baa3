"""Report analysis core: contract, pipeline, renderer, sessions and archive."""
