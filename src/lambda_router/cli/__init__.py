"""Command line interface (`lambda-router`)."""
