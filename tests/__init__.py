"""Tests for the job board and matcher packages."""
