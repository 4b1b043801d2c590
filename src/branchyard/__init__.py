"""Orchestrate isolated worktrees over one shared repository and build cache."""
