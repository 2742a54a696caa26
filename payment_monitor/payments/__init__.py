"""Payment processor collaborators."""
