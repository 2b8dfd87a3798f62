"""Natural-language store operations: validated actions, snapshots and undo/redo."""
