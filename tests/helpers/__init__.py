"""Tests for the helpers package."""
