"""Persistence layer: mentions, configurations and the job log.

- PostStore / MentionRepository: dedup-aware mention storage
- ConfigurationStore: monitoring configurations, single active at a time
- JobLogStore: per-stage audit rows

Import stores from their modules; repushield.data_management.schemas holds
the pydantic models.
"""
