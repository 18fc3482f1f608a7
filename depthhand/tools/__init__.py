"""Command-line tools for depthhand."""
