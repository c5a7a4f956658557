"""Aggregation pipeline: activity records in, project summary out."""

from project_wrapped.pipeline.assembler import build_summary

__all__ = ["build_summary"]
