"""Route templates, resource cells, error boundary and static generation."""
