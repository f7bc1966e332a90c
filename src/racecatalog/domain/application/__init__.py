"""Proposal application: routing, race reconciliation and event merging."""
