"""Command-line surface for xacct-pipeline."""
