"""Markdown task board that dispatches tasks to AI command-line tools."""
