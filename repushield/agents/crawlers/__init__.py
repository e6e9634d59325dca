"""Crawler agents: per-platform fetch, filter and store.

- FilterEngine: ontology-driven relevance filter and search query builder
- PlatformAgent: one agent class driven by an interchangeable SourceAdapter

Import concrete classes from their modules.
"""
