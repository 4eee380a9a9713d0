"""Core pipeline for running external code agents against isolated workspaces."""
