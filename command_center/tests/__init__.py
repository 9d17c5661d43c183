"""Test suite for the Command Center backend."""
