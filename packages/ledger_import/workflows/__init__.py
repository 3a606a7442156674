"""Workflow orchestrators for end-to-end imports."""
