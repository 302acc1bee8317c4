"""Click commands for the repotimeline CLI."""
