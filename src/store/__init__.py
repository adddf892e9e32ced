"""Relational storage layer.

This module loads filtered census files into the relational store.
It builds and pages the geography-to-segment join for export.
"""
