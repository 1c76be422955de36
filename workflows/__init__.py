"""Batch-Skripte der Ehrungen-Pipeline (scrape -> content -> extract -> reports)."""
