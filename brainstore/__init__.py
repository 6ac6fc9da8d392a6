"""Brainstore: a small conversational agent that learns from every exchange."""
