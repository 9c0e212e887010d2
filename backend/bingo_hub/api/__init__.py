"""HTTP blueprints: ticket evaluation and session claim management."""
