"""Command-line surface: `crateplan plan|graph|validate|version` (entry point in `crateplan.cli.main`)."""
