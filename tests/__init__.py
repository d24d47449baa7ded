"""Test suite for the GM Chicks backend."""
