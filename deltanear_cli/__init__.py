"""deltanear-cli: terminal access to intent canonicalization."""
