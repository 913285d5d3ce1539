"""Agent Fleet: track agent processes across the git worktrees of a project."""
