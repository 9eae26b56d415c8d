"""
Blueprints package for Spectre Web.

This package contains Flask blueprints that organize routes by function:
- api_collect: Sample ingest endpoint (/spectre/v1/collect)
- api_render: Waterfall rendering endpoint (/spectre/v1/render)
"""
from __future__ import annotations
