"""Offline TF-IDF search over a Markdown corpus."""
