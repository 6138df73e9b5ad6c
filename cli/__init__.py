"""Command line entry points for trailalert."""
