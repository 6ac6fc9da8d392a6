"""Prompt assembly and the text-generation client."""
