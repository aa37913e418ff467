"""GapCube command line interface."""
