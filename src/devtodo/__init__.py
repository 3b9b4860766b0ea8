"""DevTodo: task aggregation with git auto-completion and chat task extraction."""

__version__ = "0.1.0"
