"""Ankh file processing and execution.

This package turns an Ankh file into cluster operations:

- descriptor: parsing Ankh files and narrowing them to a single chart
- resolution: filling in chart versions and image tags
- output_filter: keeping only rendered objects of selected kinds
- modes: one handler per operation mode
- executor: context fan-out, dependencies and namespace grouping
- shell_commands: helm, kubectl and registry adapters
"""
