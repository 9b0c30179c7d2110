"""Test helpers for oss-transport."""
