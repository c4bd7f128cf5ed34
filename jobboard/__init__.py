"""Backend package: DB models, pipelines, APIs.

This package stores applications and job postings, runs AI matching in the
background, and serves the recruiter views over HTTP.
"""
