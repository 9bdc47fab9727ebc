"""Tests for ops-plans."""
