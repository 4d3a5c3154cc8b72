"""Thought capture domain: taxonomy, models, analysis and the processing pipeline."""
