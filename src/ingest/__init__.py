"""Census source ingestion.

This package decodes and filters the SF1 header and segment files.
It prepares filtered files for the store layer to bulk load.
"""
