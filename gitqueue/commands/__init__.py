"""Click commands for the gitqueue CLI."""
