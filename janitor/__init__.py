"""Cloud Janitor - cleanup eligibility and cluster conformity tracking."""

__version__ = "0.1.0"
