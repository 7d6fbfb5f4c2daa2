"""Token tree helpers: flattening, dotted-path edits, and alias validation."""
