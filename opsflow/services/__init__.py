"""Services layer: credentials (secret store) and on-disk configuration."""
