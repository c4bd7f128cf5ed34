"""Pipelines for applications, job postings, and background matching.

Each step takes an explicit session (or session factory) so it can be called
from route handlers, background tasks and scripts alike.
"""
