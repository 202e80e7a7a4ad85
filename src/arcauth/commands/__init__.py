"""Built-in CLI commands for arcauth."""
