"""Chat turn pipeline: classification, sanitization, sessions and orchestration."""
