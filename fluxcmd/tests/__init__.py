"""Tests for fluxcmd."""
