"""Shared API envelopes."""
